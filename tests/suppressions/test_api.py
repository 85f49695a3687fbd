from __future__ import annotations

import pytest

from compliance_engine.models import App, Construct, NestedStack, Resource, Stack
from compliance_engine.suppressions import (
    NagSuppressions,
    PathNotFoundError,
    SuppressionFormatError,
    SuppressionResolver,
)

REASON = "lorem ipsum dolor"


def build_tree() -> tuple[Stack, Construct, Resource, Resource]:
    app = App()
    stack = Stack(app, "Stack1")
    bucket = Construct(stack, "Bucket")
    bucket_resource = Resource(bucket, "Resource", type="AWS::S3::Bucket")
    policy = Resource(bucket, "Policy", type="AWS::S3::BucketPolicy")
    return stack, bucket, bucket_resource, policy


def rule_ids(resource: Resource | Stack) -> list[str]:
    return [item.rule_id for item in SuppressionResolver().get_suppressions(resource)]


def test_resource_suppressions_target_the_default_child() -> None:
    _, bucket, bucket_resource, policy = build_tree()

    NagSuppressions.add_resource_suppressions(bucket, [{"id": "Pack-R1", "reason": REASON}])

    assert rule_ids(bucket_resource) == ["Pack-R1"]
    assert rule_ids(policy) == []


def test_resource_suppressions_can_cascade_to_children() -> None:
    _, bucket, bucket_resource, policy = build_tree()

    NagSuppressions.add_resource_suppressions(
        bucket,
        [{"id": "Pack-R1", "reason": REASON}],
        apply_to_children=True,
    )

    assert rule_ids(bucket_resource) == ["Pack-R1"]
    assert rule_ids(policy) == ["Pack-R1"]


def test_stack_suppressions_optionally_reach_nested_stacks() -> None:
    stack, _, _, _ = build_tree()
    nested = NestedStack(stack, "Nested")

    NagSuppressions.add_stack_suppressions(stack, [{"id": "Pack-R1", "reason": REASON}])
    assert rule_ids(stack) == ["Pack-R1"]
    assert rule_ids(nested) == []

    NagSuppressions.add_stack_suppressions(
        stack,
        [{"id": "Pack-R2", "reason": REASON}],
        apply_to_nested_stacks=True,
    )
    assert rule_ids(stack) == ["Pack-R1", "Pack-R2"]
    assert rule_ids(nested) == ["Pack-R2"]


@pytest.mark.parametrize("path", ["Stack1/Bucket", "/Stack1/Bucket", "Stack1/Bucket/Resource"])
def test_suppressions_by_path_match_construct_or_resource_child(path: str) -> None:
    stack, _, bucket_resource, policy = build_tree()

    NagSuppressions.add_resource_suppressions_by_path(stack, path, [{"id": "Pack-R1", "reason": REASON}])

    assert rule_ids(bucket_resource) == ["Pack-R1"]
    assert rule_ids(policy) == []


def test_suppressions_by_path_raise_when_nothing_matches() -> None:
    stack, _, _, _ = build_tree()

    with pytest.raises(PathNotFoundError, match='"/Stack1/Missing" did not match any resource'):
        NagSuppressions.add_resource_suppressions_by_path(
            stack,
            "/Stack1/Missing",
            [{"id": "Pack-R1", "reason": REASON}],
        )


def test_suppressions_by_path_do_not_match_other_child_names() -> None:
    stack, _, _, _ = build_tree()

    with pytest.raises(PathNotFoundError):
        NagSuppressions.add_resource_suppressions_by_path(
            stack,
            "Stack1/Bucket/Default",
            [{"id": "Pack-R1", "reason": REASON}],
        )


def test_invalid_suppressions_are_rejected_before_storage() -> None:
    stack, bucket, bucket_resource, _ = build_tree()

    with pytest.raises(SuppressionFormatError):
        NagSuppressions.add_resource_suppressions(bucket, [{"id": "Pack-R1", "reason": "short"}])
    with pytest.raises(SuppressionFormatError):
        NagSuppressions.add_stack_suppressions(stack, [{"id": "Pack-R1[Finding]", "reason": REASON}])

    assert "cdk_nag" not in bucket_resource.template_metadata
    assert "cdk_nag" not in stack.template_metadata
