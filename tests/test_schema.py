from __future__ import annotations

import pytest

from pipelint.exceptions import TaskDefinitionError
from pipelint.schema import TaskInput, TaskSchema, TaskVersion, ensure_task_schema

BASH_TASK = {
    "id": "6c731c3c-3c68-459a-a5c9-bde6e6595b5b",
    "name": "Bash",
    "friendlyName": "Bash",
    "category": "Utility",
    "version": {"Major": 3, "Minor": 231, "Patch": 5},
    "groups": [{"name": "advanced", "displayName": "Advanced", "isExpanded": False}],
    "inputs": [
        {"name": "targetType", "type": "radio", "required": False, "defaultValue": "filePath"},
        {"name": "filePath", "type": "filePath", "required": True, "visibleRule": "targetType = filePath"},
        {"name": "script", "type": "multiLine", "required": True, "visibleRule": "targetType = inline"},
        {"name": "workingDirectory", "type": "filePath", "required": False, "groupName": "advanced"},
    ],
}


def test_from_payload_builds_schema() -> None:
    schema = TaskSchema.from_payload(BASH_TASK)

    assert schema.fully_qualified_name == "Bash@3"
    assert schema.version == TaskVersion(3, 231, 5)
    assert schema.version.full_version() == "3.231.5"
    assert schema.required_input_names == ("filePath", "script")
    assert schema.groups[0].display_name == "Advanced"


def test_required_inputs_are_subset_of_inputs() -> None:
    schema = TaskSchema.from_payload(BASH_TASK)
    names = {task_input.name for task_input in schema.inputs}

    assert set(schema.required_input_names) <= names


def test_get_input_definition() -> None:
    schema = TaskSchema.from_payload(BASH_TASK)

    file_path = schema.get_input_definition("filePath")
    assert isinstance(file_path, TaskInput)
    assert file_path.visible_rule == "targetType = filePath"
    assert schema.get_input_definition("workingDirectory").group_name == "advanced"
    assert schema.get_input_definition("targetType").default_value == "filePath"
    assert schema.get_input_definition("missing") is None


def test_payload_round_trip() -> None:
    schema = TaskSchema.from_payload(BASH_TASK)

    assert TaskSchema.from_payload(schema.as_payload()) == schema


def test_missing_inputs_means_no_inputs() -> None:
    schema = TaskSchema.from_payload({"name": "Noop", "version": {"Major": 1}})

    assert schema.inputs == ()
    assert schema.required_input_names == ()


@pytest.mark.parametrize(
    "payload",
    [
        {"version": {"Major": 1}, "inputs": []},
        {"name": "Bash", "inputs": []},
        {"name": "Bash", "version": {"Minor": 1}, "inputs": []},
        {"name": "Bash", "version": {"Major": "x"}, "inputs": []},
        {"name": "Bash", "version": {"Major": float("inf")}, "inputs": []},
        {"name": "Bash", "version": {"Major": 1}, "inputs": "script"},
        {"name": "Bash", "version": {"Major": 1}, "inputs": [{"required": True}]},
        {"name": "Bash", "version": {"Major": 1}, "inputs": [{"name": "a"}, {"name": "a"}]},
        ["not", "a", "mapping"],
    ],
)
def test_malformed_payloads_raise(payload: object) -> None:
    with pytest.raises(TaskDefinitionError):
        TaskSchema.from_payload(payload)


def test_ensure_task_schema_is_idempotent() -> None:
    schema = ensure_task_schema(BASH_TASK)

    assert ensure_task_schema(schema) is schema
    assert ensure_task_schema(schema.as_payload()) == schema
    with pytest.raises(TaskDefinitionError):
        ensure_task_schema("Bash@3")
