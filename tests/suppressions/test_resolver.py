from __future__ import annotations

import re

import pytest

from compliance_engine.models import App, RegexAppliesTo, Resource, Stack, Suppression
from compliance_engine.suppressions import SuppressionFormatError, SuppressionResolver, compile_applies_to


def build_resource() -> Resource:
    app = App()
    stack = Stack(app, "Stack1")
    return Resource(stack, "Bucket", type="AWS::S3::Bucket")


def test_compile_applies_to_maps_flags() -> None:
    pattern = compile_applies_to("/^action::s3:.*$/i")
    assert pattern.flags & re.IGNORECASE
    assert pattern.search("Action::S3:GetObject")

    # g, u and y are accepted for compatibility and have no effect
    assert compile_applies_to("/Resource::\\*/gu").search("Resource::*")


@pytest.mark.parametrize("expression", ["no-slashes", "/unterminated(/", "/abc/q", "abc/"])
def test_compile_applies_to_rejects_invalid_expressions(expression: str) -> None:
    with pytest.raises(SuppressionFormatError, match=re.escape(f"[{expression}]")):
        compile_applies_to(expression)


def test_validate_accepts_well_formed_suppressions() -> None:
    resolver = SuppressionResolver()

    validated = resolver.validate(
        [
            {"id": "Pack-R1", "reason": "lorem ipsum"},
            {"id": "Pack-R2", "reason": "lorem ipsum", "applies_to": ["Finding", {"regex": "/^Act.*$/"}]},
        ]
    )

    assert validated[0] == Suppression(rule_id="Pack-R1", reason="lorem ipsum")
    assert validated[1].applies_to == ("Finding", RegexAppliesTo("/^Act.*$/"))


@pytest.mark.parametrize(
    ("suppression", "message"),
    [
        ({"id": "Pack-R1", "reason": "too short"}, "10 characters or more"),
        ({"id": "Pack-R1[Finding]", "reason": "lorem ipsum"}, "contains a finding '[Finding]'"),
        ({"id": "Pack-R1", "reason": "lorem ipsum", "applies_to": [{"regex": "bad"}]}, "Invalid regular expression [bad]"),
        ({"reason": "lorem ipsum"}, "must have an 'id'"),
    ],
)
def test_validate_rejects_malformed_suppressions(suppression: dict, message: str) -> None:
    with pytest.raises(SuppressionFormatError, match=re.escape(message)):
        SuppressionResolver().validate([suppression], owner_id="Bucket")


def test_validate_rejects_non_mapping_entries() -> None:
    with pytest.raises(SuppressionFormatError):
        SuppressionResolver().validate(["Pack-R1"])


@pytest.mark.parametrize("finding_id", ["", "Finding", "Action::s3:*"])
def test_matches_requires_same_rule_id(finding_id: str) -> None:
    suppression = Suppression(rule_id="Pack-R1", reason="lorem ipsum")
    assert not SuppressionResolver.matches(suppression, "Pack-R2", finding_id)


@pytest.mark.parametrize("finding_id", ["", "Finding", "Action::s3:*"])
def test_blanket_suppression_matches_every_finding(finding_id: str) -> None:
    suppression = Suppression(rule_id="Pack-R1", reason="lorem ipsum")
    assert SuppressionResolver.matches(suppression, "Pack-R1", finding_id)


def test_blanket_suppression_covers_the_rules_validation_failures() -> None:
    blanket = Suppression(rule_id="Pack-R1", reason="lorem ipsum")
    granular = Suppression(rule_id="Pack-R1", reason="lorem ipsum", applies_to=("Finding",))

    assert SuppressionResolver.matches(blanket, "CdkNagValidationFailure", "Pack-R1")
    assert not SuppressionResolver.matches(blanket, "CdkNagValidationFailure", "Pack-R2")
    assert not SuppressionResolver.matches(granular, "CdkNagValidationFailure", "Pack-R1")


def test_granular_suppression_matching() -> None:
    suppression = Suppression(
        rule_id="Pack-R1",
        reason="lorem ipsum",
        applies_to=("Action::s3:GetObject", RegexAppliesTo("/^Resource::arn:.*\\*$/")),
    )

    assert SuppressionResolver.matches(suppression, "Pack-R1", "Action::s3:GetObject")
    assert SuppressionResolver.matches(suppression, "Pack-R1", "Resource::arn:aws:s3:::bucket/*")
    assert not SuppressionResolver.matches(suppression, "Pack-R1", "Action::s3:PutObject")
    assert not SuppressionResolver.matches(suppression, "Pack-R1", "")


def test_regex_only_suppression_never_matches_empty_finding() -> None:
    suppression = Suppression(rule_id="Pack-R1", reason="lorem ipsum", applies_to=(RegexAppliesTo("/.*/"),))
    assert not SuppressionResolver.matches(suppression, "Pack-R1", "")
    assert SuppressionResolver.matches(suppression, "Pack-R1", "anything")


def test_collect_returns_resource_then_stack_suppressions() -> None:
    resolver = SuppressionResolver()
    resource = build_resource()
    resolver.add_suppressions(resource, [Suppression("Pack-R1", "resource level")])
    resolver.add_suppressions(resource.stack, [Suppression("Pack-R2", "stack level reason")])

    collected = resolver.collect(resource)

    assert [item.rule_id for item in collected] == ["Pack-R1", "Pack-R2"]
    assert resource.stack.template_metadata["cdk_nag"]["rules_to_suppress"] == [
        {"id": "Pack-R2", "reason": "stack level reason"}
    ]


def test_collect_revalidates_metadata_mutated_after_attachment() -> None:
    resolver = SuppressionResolver()
    resource = build_resource()
    resolver.add_suppressions(resource, [Suppression("Pack-R1", "lorem ipsum")])

    resource.get_metadata("cdk_nag")["rules_to_suppress"][0]["reason"] = "short"

    with pytest.raises(SuppressionFormatError, match="10 characters or more"):
        resolver.collect(resource)


def test_add_suppressions_deduplicates_serialized_entries() -> None:
    resolver = SuppressionResolver()
    resource = build_resource()
    suppression = Suppression("Pack-R1", "lorem ipsum", applies_to=("Finding",))

    resolver.add_suppressions(resource, [suppression])
    resolver.add_suppressions(resource, [suppression, Suppression("Pack-R2", "lorem ipsum")])

    assert resolver.get_suppressions(resource) == [suppression, Suppression("Pack-R2", "lorem ipsum")]


def test_non_latin_reasons_are_encoded_in_metadata() -> None:
    resolver = SuppressionResolver()
    resource = build_resource()
    reason = "これは抑制の理由です"

    resolver.add_suppressions(resource, [Suppression("Pack-R1", reason)])

    stored = resource.get_metadata("cdk_nag")["rules_to_suppress"][0]
    assert stored["is_reason_encoded"] is True
    assert stored["reason"] != reason
    assert resolver.get_suppressions(resource)[0].reason == reason


def test_set_suppressions_replaces_existing_entries() -> None:
    resolver = SuppressionResolver()
    resource = build_resource()
    resolver.add_suppressions(resource, [Suppression("Pack-R1", "lorem ipsum")])

    resolver.set_suppressions(resource, [Suppression("Pack-R9", "replacement reason")])

    assert [item.rule_id for item in resolver.get_suppressions(resource)] == ["Pack-R9"]
