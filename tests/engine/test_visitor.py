from __future__ import annotations

import json
from pathlib import Path

import pytest

from compliance_engine.engine import NagSynthesisError, NagVisitor, RuleDefinition, RuleSetPack
from compliance_engine.models import App, Construct, NagMessageLevel, NestedStack, Resource, Stack


def rule_requires_tag(node: Resource) -> bool:
    return bool(node.properties.get("Tags"))


def build_pack(name: str = "Test", **options: object) -> RuleSetPack:
    return RuleSetPack(
        name,
        [
            RuleDefinition(
                rule=rule_requires_tag,
                level=NagMessageLevel.ERROR,
                info="Resources must be tagged.",
                explanation="Tags drive cost allocation.",
                rule_suffix_override="T1",
            )
        ],
        **options,
    )


def build_app(outdir: Path | None = None) -> App:
    app = App(outdir=outdir)
    stack = Stack(app, "Stack1")
    wrapper = Construct(stack, "Bucket")
    Resource(wrapper, "Resource", type="AWS::S3::Bucket", properties={"Tags": [{"Key": "team", "Value": "a"}]})
    nested = NestedStack(stack, "Nested")
    Resource(nested, "Queue", type="AWS::SQS::Queue", properties={"Tags": [{"Key": "team", "Value": "a"}]})
    return app


def test_run_visits_every_node_and_writes_reports(tmp_path: Path) -> None:
    app = build_app(tmp_path)

    result = NagVisitor([build_pack("First"), build_pack("Second")]).run(app)

    # root, stack, wrapper, bucket, nested stack, queue
    assert result.visited == 6
    names = sorted(path.name for path in result.report_paths)
    assert len(names) == 4
    assert "First-Stack1-NagReport.csv" in names
    assert "Second-Stack1-NagReport.csv" in names
    assert all("${Token" not in name for name in names)
    assert all(path.exists() for path in result.report_paths)


def test_explicit_outdir_overrides_app_outdir(tmp_path: Path) -> None:
    app = build_app()

    without_outdir = NagVisitor([build_pack()]).run(app)
    assert without_outdir.report_paths == []

    result = NagVisitor([build_pack()]).run(build_app(), outdir=tmp_path / "reports")
    assert {path.parent for path in result.report_paths} == {tmp_path / "reports"}


def test_halting_findings_raise_after_reports_are_written(tmp_path: Path) -> None:
    app = App(outdir=tmp_path)
    stack = Stack(app, "Stack1")
    Resource(stack, "Untagged", type="AWS::S3::Bucket")

    with pytest.raises(NagSynthesisError, match="1 unsuppressed error-level finding") as excinfo:
        NagVisitor([build_pack()]).run(app)

    assert excinfo.value.findings == ["[Stack1/Untagged] Test-T1: Resources must be tagged."]
    assert (tmp_path / "Test-Stack1-NagReport.csv").exists()


def test_only_packs_failing_on_error_halt(tmp_path: Path) -> None:
    app = App(outdir=tmp_path)
    stack = Stack(app, "Stack1")
    Resource(stack, "Untagged", type="AWS::S3::Bucket")

    result = NagVisitor([build_pack(fail_on_error=False)]).run(app)

    assert result.halting_findings == []


def test_rerunning_packs_starts_from_a_clean_slate(tmp_path: Path) -> None:
    untagged = App()
    Resource(Stack(untagged, "Stack1"), "Untagged", type="AWS::S3::Bucket")
    visitor = NagVisitor([build_pack(report_formats=["json"])])

    with pytest.raises(NagSynthesisError):
        visitor.run(untagged, outdir=tmp_path / "first")

    result = visitor.run(build_app(), outdir=tmp_path / "second")

    assert result.halting_findings == []
    report = json.loads((tmp_path / "second" / "Test-Stack1-NagReport.json").read_text(encoding="utf-8"))
    assert [line["compliance"] for line in report["lines"]] == ["Compliant"]
