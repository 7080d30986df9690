"""Machine group definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

MACHINE_ID_TYPE_IP = "ip"
MACHINE_ID_TYPE_USER_DEFINED = "userdefined"


def _lookup(data: dict[str, Any], key: str, default: Any) -> Any:
    """Find a key in a decoded document, matching case-insensitively as a fallback."""
    if key in data:
        return data[key]
    lowered = key.lower()
    for name, value in data.items():
        if name.lower() == lowered:
            return value
    return default


@dataclass
class MachineGroupAttribute:
    external_name: str = ""
    topic_name: str = ""


@dataclass
class MachineGroup:
    name: str = ""
    type: str = ""
    machine_id_type: str = ""
    machine_id_list: list[str] = field(default_factory=list)
    attribute: MachineGroupAttribute = field(default_factory=MachineGroupAttribute)
    create_time: int = 0
    last_modify_time: int = 0

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "groupName": self.name,
            "groupType": self.type,
            "machineIdentifyType": self.machine_id_type,
            "machineList": list(self.machine_id_list),
            "groupAttribute": {
                "externalName": self.attribute.external_name,
                "groupTopic": self.attribute.topic_name,
            },
        }
        if self.create_time:
            result["createTime"] = self.create_time
        if self.last_modify_time:
            result["lastModifyTime"] = self.last_modify_time
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MachineGroup:
        attribute = _lookup(data, "groupAttribute", None) or {}
        return cls(
            name=_lookup(data, "groupName", ""),
            type=_lookup(data, "groupType", ""),
            machine_id_type=_lookup(data, "machineIdentifyType", ""),
            machine_id_list=list(_lookup(data, "machineList", None) or []),
            attribute=MachineGroupAttribute(
                external_name=_lookup(attribute, "externalName", ""),
                topic_name=_lookup(attribute, "groupTopic", ""),
            ),
            create_time=_lookup(data, "createTime", 0),
            last_modify_time=_lookup(data, "lastModifyTime", 0),
        )


@dataclass
class Machine:
    ip: str = ""
    unique_id: str = ""
    user_defined_id: str = ""
    last_heartbeat_time: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Machine:
        return cls(
            ip=_lookup(data, "IP", ""),
            unique_id=_lookup(data, "machine-uniqueid", ""),
            user_defined_id=_lookup(data, "userdefined-id", ""),
            last_heartbeat_time=_lookup(data, "lastHeartbeatTime", 0),
        )


@dataclass
class MachineList:
    total: int = 0
    machines: list[Machine] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MachineList:
        return cls(
            total=_lookup(data, "Total", 0),
            machines=[Machine.from_dict(item) for item in _lookup(data, "Machines", None) or []],
        )