from __future__ import annotations

import pytest

from compliance_engine.models import App, Resource, Stack
from compliance_engine.utils import flatten_reference


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("plain-bucket-name", "plain-bucket-name"),
        ("arn:${AWS::Partition}:s3:::${Bucket}", "arn:<AWS::Partition>:s3:::<Bucket>"),
        (None, ""),
        ({"Ref": "MyBucket"}, "<MyBucket>"),
        ({"Fn::GetAtt": ["MyBucket", "Arn"]}, "<MyBucket.Arn>"),
        (
            {"Fn::Join": ["", ["arn:", {"Ref": "AWS::Partition"}, ":s3:::", {"Ref": "MyBucket"}]]},
            "arn:<AWS::Partition>:s3:::<MyBucket>",
        ),
        ({"Fn::Join": ["/", ["a", "b", "c"]]}, "a/b/c"),
        ({"Fn::Sub": "arn:${AWS::Partition}:logs:${LogGroup}"}, "arn:<AWS::Partition>:logs:<LogGroup>"),
        ({"Fn::Sub": ["${Prefix}-bucket", {"Prefix": "dev"}]}, "<Prefix>-bucket"),
        ({"Fn::ImportValue": "SharedVpcId"}, "SharedVpcId"),
        ({"Fn::ImportValue": {"Fn::Sub": "${Env}-VpcId"}}, "<Env>-VpcId"),
    ],
)
def test_flatten_recognized_shapes(expression: object, expected: str) -> None:
    assert flatten_reference(expression) == expected


def test_flatten_resolves_reference_objects() -> None:
    app = App()
    stack = Stack(app, "Stack1")
    bucket = Resource(stack, "Bucket", type="AWS::S3::Bucket")

    assert flatten_reference(bucket.ref()) == "<Bucket>"
    assert flatten_reference(bucket.get_att("Arn")) == "<Bucket.Arn>"


def test_flatten_falls_back_to_json_for_unrecognized_values() -> None:
    assert flatten_reference({"Fn::Select": [0, ["a", "b"]]}) == '{"Fn::Select":[0,["a","b"]]}'
    assert flatten_reference(42) == "42"
    assert flatten_reference(["x", 1]) == '["x",1]'


def test_flatten_is_total_for_malformed_input() -> None:
    assert flatten_reference({"Fn::Join": "oops"}) == '{"Fn::Join":"oops"}'
    assert flatten_reference({"Fn::GetAtt": ["OnlyTarget"]}) == '{"Fn::GetAtt":["OnlyTarget"]}'


def test_flatten_survives_deep_and_cyclic_graphs() -> None:
    deep: object = "leaf"
    for _ in range(5000):
        deep = {"Fn::Join": ["", [deep]]}
    assert isinstance(flatten_reference(deep), str)

    cyclic: dict = {}
    cyclic["Fn::Join"] = ["", [cyclic]]
    assert isinstance(flatten_reference(cyclic), str)


def test_flatten_is_deterministic() -> None:
    expression = {"Fn::Join": ["-", [{"Ref": "A"}, {"Fn::GetAtt": ["B", "Arn"]}, "${C}"]]}
    assert flatten_reference(expression) == flatten_reference(expression) == "<A>-<B.Arn>-<C>"


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("${a${b}}", "<a<b>>"),
        ("prefix-${Unclosed", "prefix-<Unclosed"),
        ("dangling}", "dangling>"),
    ],
)
def test_flattened_strings_never_keep_template_markers(expression: str, expected: str) -> None:
    flattened = flatten_reference(expression)

    assert flattened == expected
    assert "${" not in flattened


def test_flatten_never_raises_for_references_outside_a_stack() -> None:
    orphan = Resource(App(), "Orphan", type="AWS::S3::Bucket")

    assert isinstance(flatten_reference(orphan.ref()), str)
    assert isinstance(flatten_reference(orphan.get_att("Arn")), str)


def test_flatten_never_raises_for_unprintable_values() -> None:
    class Unprintable:
        def __str__(self) -> str:
            raise RuntimeError("no str")

        def __repr__(self) -> str:
            raise RuntimeError("no repr")

    assert flatten_reference(Unprintable()) == "<Unprintable>"
    assert flatten_reference({"Fn::Select": [Unprintable()]}) == "<dict>"
