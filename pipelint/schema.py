"""Task schema model built from ``task.json`` task definitions."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from .exceptions import TaskDefinitionError

__all__ = [
    "TaskGroup",
    "TaskInput",
    "TaskSchema",
    "TaskVersion",
    "ensure_task_schema",
]


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    return str(value)


def _as_int(value: Any, path: str) -> int:
    if isinstance(value, bool):
        raise TaskDefinitionError(f"Expected integer at {path!r}, got bool")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise TaskDefinitionError(f"Expected integer at {path!r}, got {value!r}") from exc


@dataclass(frozen=True)
class TaskVersion:
    major: int
    minor: int = 0
    patch: int = 0

    @classmethod
    def from_mapping(cls, data: Any) -> "TaskVersion":
        if not isinstance(data, Mapping):
            raise TaskDefinitionError("Task definition 'version' must be a mapping")
        if data.get("Major") is None:
            raise TaskDefinitionError("Task definition is missing 'version.Major'")
        return cls(
            major=_as_int(data["Major"], "version.Major"),
            minor=_as_int(data.get("Minor", 0), "version.Minor"),
            patch=_as_int(data.get("Patch", 0), "version.Patch"),
        )

    def full_version(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def as_dict(self) -> Dict[str, int]:
        return {"Major": self.major, "Minor": self.minor, "Patch": self.patch}


@dataclass(frozen=True)
class TaskGroup:
    name: str
    display_name: str | None = None
    is_expanded: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TaskGroup":
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise TaskDefinitionError("Task group entries require a non-empty 'name'")
        return cls(
            name=name,
            display_name=_optional_str(data, "displayName"),
            is_expanded=bool(data.get("isExpanded", False)),
        )

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "isExpanded": self.is_expanded}
        if self.display_name is not None:
            data["displayName"] = self.display_name
        return data


@dataclass(frozen=True)
class TaskInput:
    """Definition of a single task input.

    ``visible_rule`` only matters for required inputs: such an input is
    required when the rule holds for the inputs supplied to the task.
    """

    name: str
    required: bool = False
    visible_rule: str | None = None
    default_value: str | None = None
    group_name: str | None = None
    type: str | None = None
    label: str | None = None
    aliases: Tuple[str, ...] = ()
    options: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Any) -> "TaskInput":
        if not isinstance(data, Mapping):
            raise TaskDefinitionError("Task input entries must be mappings")
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise TaskDefinitionError("Task input entries require a non-empty 'name'")
        aliases = data.get("aliases") or ()
        if isinstance(aliases, str) or not isinstance(aliases, Sequence):
            raise TaskDefinitionError(f"Input {name!r} aliases must be a list")
        options = data.get("options") or {}
        if not isinstance(options, Mapping):
            raise TaskDefinitionError(f"Input {name!r} options must be a mapping")
        return cls(
            name=name,
            required=bool(data.get("required", False)),
            visible_rule=_optional_str(data, "visibleRule") or None,
            default_value=_optional_str(data, "defaultValue"),
            group_name=_optional_str(data, "groupName"),
            type=_optional_str(data, "type"),
            label=_optional_str(data, "label"),
            aliases=tuple(str(alias) for alias in aliases),
            options={str(key): str(value) for key, value in options.items()},
        )

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "required": self.required}
        optional = {
            "visibleRule": self.visible_rule,
            "defaultValue": self.default_value,
            "groupName": self.group_name,
            "type": self.type,
            "label": self.label,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        if self.aliases:
            data["aliases"] = list(self.aliases)
        if self.options:
            data["options"] = dict(self.options)
        return data


@dataclass(frozen=True)
class TaskSchema:
    """Normalised task definition shared by every validation of a task."""

    name: str
    version: TaskVersion
    inputs: Tuple[TaskInput, ...] = ()
    id: str | None = None
    friendly_name: str | None = None
    description: str | None = None
    category: str | None = None
    groups: Tuple[TaskGroup, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "groups", tuple(self.groups))
        names = [task_input.name for task_input in self.inputs]
        if len(names) != len(set(names)):
            raise TaskDefinitionError(f"Task {self.name!r} declares duplicate input names")

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.name}@{self.version.major}"

    @property
    def required_input_names(self) -> Tuple[str, ...]:
        """Names of required inputs in declaration order."""

        return tuple(task_input.name for task_input in self.inputs if task_input.required)

    def get_input_definition(self, name: str) -> TaskInput | None:
        for task_input in self.inputs:
            if task_input.name == name:
                return task_input
        return None

    @classmethod
    def from_payload(cls, payload: Any) -> "TaskSchema":
        """Build a schema from a ``task.json`` mapping."""

        if not isinstance(payload, Mapping):
            raise TaskDefinitionError("Task definition must be a mapping")
        name = payload.get("name")
        if not isinstance(name, str) or not name:
            raise TaskDefinitionError("Task definition requires a non-empty 'name'")
        raw_inputs = payload.get("inputs")
        if raw_inputs is None:
            raw_inputs = ()
        if isinstance(raw_inputs, (str, bytes)) or not isinstance(raw_inputs, Sequence):
            raise TaskDefinitionError(f"Task {name!r} 'inputs' must be a list")
        raw_groups = payload.get("groups") or ()
        if isinstance(raw_groups, (str, bytes)) or not isinstance(raw_groups, Sequence):
            raise TaskDefinitionError(f"Task {name!r} 'groups' must be a list")
        return cls(
            name=name,
            version=TaskVersion.from_mapping(payload.get("version")),
            inputs=tuple(TaskInput.from_mapping(item) for item in raw_inputs),
            id=_optional_str(payload, "id"),
            friendly_name=_optional_str(payload, "friendlyName"),
            description=_optional_str(payload, "description"),
            category=_optional_str(payload, "category"),
            groups=tuple(TaskGroup.from_mapping(item) for item in raw_groups if isinstance(item, Mapping)),
        )

    def as_payload(self) -> Dict[str, Any]:
        """Serialise back into ``task.json`` field names."""

        data: Dict[str, Any] = {
            "name": self.name,
            "version": self.version.as_dict(),
            "inputs": [task_input.as_dict() for task_input in self.inputs],
        }
        optional = {
            "id": self.id,
            "friendlyName": self.friendly_name,
            "description": self.description,
            "category": self.category,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        if self.groups:
            data["groups"] = [group.as_dict() for group in self.groups]
        return data


def ensure_task_schema(value: Any) -> TaskSchema:
    """Return ``value`` as a :class:`TaskSchema`, building it from a payload if needed."""

    if isinstance(value, TaskSchema):
        return value
    if isinstance(value, Mapping):
        return TaskSchema.from_payload(value)
    raise TaskDefinitionError(f"Cannot build a task schema from {type(value).__name__}")
