from __future__ import annotations

import json
from pathlib import Path

import pytest

from compliance_engine.adapters import TemplateLoader, TemplateLoaderError

YAML_TEMPLATE = """
Resources:
  Bucket:
    Type: AWS::S3::Bucket
    Properties:
      BucketName: !Sub "${AWS::StackName}-logs"
  Policy:
    Type: AWS::S3::BucketPolicy
    Properties:
      Bucket: !Ref Bucket
      Target: !GetAtt Bucket.Arn
      Joined: !Join
        - ":"
        - - a
          - !Ref AWS::Region
      Picked: !Select [0, !GetAZs ""]
    Condition: !Condition IsProd
"""


def test_loads_json_and_yaml_templates(tmp_path: Path) -> None:
    json_path = tmp_path / "Stack1.template.json"
    json_path.write_text(json.dumps({"Resources": {"Queue": {"Type": "AWS::SQS::Queue"}}}), encoding="utf-8")
    yaml_path = tmp_path / "Stack2.template.yaml"
    yaml_path.write_text(YAML_TEMPLATE, encoding="utf-8")

    first, second = TemplateLoader([json_path, yaml_path]).load()

    assert first.name == "Stack1"
    assert first.body["Resources"]["Queue"]["Type"] == "AWS::SQS::Queue"
    assert second.name == "Stack2"
    resources = second.body["Resources"]
    assert resources["Bucket"]["Properties"]["BucketName"] == {"Fn::Sub": "${AWS::StackName}-logs"}
    policy = resources["Policy"]["Properties"]
    assert policy["Bucket"] == {"Ref": "Bucket"}
    assert policy["Target"] == {"Fn::GetAtt": ["Bucket", "Arn"]}
    assert policy["Joined"] == {"Fn::Join": [":", ["a", {"Ref": "AWS::Region"}]]}
    assert policy["Picked"] == {"Fn::Select": [0, {"Fn::GetAZs": ""}]}
    assert resources["Policy"]["Condition"] == {"Condition": "IsProd"}


def test_directories_are_searched_for_templates(tmp_path: Path) -> None:
    out = tmp_path / "cdk.out"
    (out / "assembly").mkdir(parents=True)
    (out / "b.template.json").write_text("{}", encoding="utf-8")
    (out / "assembly" / "a.template.json").write_text("{}", encoding="utf-8")
    (out / "manifest.json").write_text("{}", encoding="utf-8")

    documents = TemplateLoader([out]).load()

    assert sorted(document.name for document in documents) == ["a", "b"]


def test_plain_file_names_use_the_stem(tmp_path: Path) -> None:
    path = tmp_path / "network.json"
    path.write_text("{}", encoding="utf-8")

    (document,) = TemplateLoader([path]).load()

    assert document.name == "network"


@pytest.mark.parametrize(
    ("file_name", "content", "message"),
    [
        ("broken.template.json", "{", "Invalid JSON"),
        ("broken.template.yaml", "Resources: [", "Invalid YAML"),
        ("list.template.json", "[]", "must be a mapping"),
    ],
)
def test_invalid_templates_raise(tmp_path: Path, file_name: str, content: str, message: str) -> None:
    path = tmp_path / file_name
    path.write_text(content, encoding="utf-8")

    with pytest.raises(TemplateLoaderError, match=message):
        TemplateLoader([path]).load()


def test_missing_paths_raise(tmp_path: Path) -> None:
    with pytest.raises(TemplateLoaderError, match="Template not found"):
        TemplateLoader([tmp_path / "missing.template.json"]).load()

    with pytest.raises(TemplateLoaderError, match="No templates found"):
        TemplateLoader([tmp_path]).load()

    with pytest.raises(TemplateLoaderError, match="No template paths"):
        TemplateLoader([]).load()
