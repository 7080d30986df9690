"""Shipper definitions that deliver log store data to object storage."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

OSS_SHIPPER_TYPE = "oss"


def _detail_value(detail: Any) -> Any:
    to_dict = getattr(detail, "_to_dict", None)
    return to_dict() if callable(to_dict) else detail


@dataclass
class OssStorageCsvDetail:
    delimiter: str = ""
    header: bool = False
    line_feed: str = ""
    columns: list[str] = field(default_factory=list)
    null_identifier: str = ""
    quote: str = ""

    def _to_dict(self) -> dict[str, Any]:
        return {
            "delemiter": self.delimiter,
            "header": self.header,
            "lineFeed": self.line_feed,
            "columns": list(self.columns),
            "nullIdentfifier": self.null_identifier,
            "quote": self.quote,
        }


@dataclass
class ParquetConfig:
    name: str = ""
    type: str = ""

    def _to_dict(self) -> dict[str, str]:
        return {"name": self.name, "type": self.type}


@dataclass
class OssStorageParquet:
    columns: list[ParquetConfig] = field(default_factory=list)

    def _to_dict(self) -> dict[str, Any]:
        return {"columns": [column._to_dict() for column in self.columns]}


@dataclass
class OssStorageJsonDetail:
    enable_tag: bool = False

    def _to_dict(self) -> dict[str, bool]:
        return {"enableTag": self.enable_tag}


@dataclass
class ShipperStorage:
    format: str = ""
    detail: Any = None

    def _to_dict(self) -> dict[str, Any]:
        return {"format": self.format, "detail": _detail_value(self.detail)}


@dataclass
class OSSShipperConfig:
    oss_bucket: str = ""
    oss_prefix: str = ""
    role_arn: str = ""
    buffer_interval: int = 0
    buffer_size: int = 0
    compress_type: str = ""
    path_format: str = ""
    format: str = ""
    storage: ShipperStorage = field(default_factory=ShipperStorage)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ossBucket": self.oss_bucket,
            "ossPrefix": self.oss_prefix,
            "roleArn": self.role_arn,
            "bufferInterval": self.buffer_interval,
            "bufferSize": self.buffer_size,
            "compressType": self.compress_type,
            "pathFormat": self.path_format,
            "format": self.format,
            "storage": self.storage._to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OSSShipperConfig:
        storage = data.get("storage") or {}
        return cls(
            oss_bucket=data.get("ossBucket", ""),
            oss_prefix=data.get("ossPrefix", ""),
            role_arn=data.get("roleArn", ""),
            buffer_interval=data.get("bufferInterval", 0),
            buffer_size=data.get("bufferSize", 0),
            compress_type=data.get("compressType", ""),
            path_format=data.get("pathFormat", ""),
            format=data.get("format", ""),
            storage=ShipperStorage(format=storage.get("format", ""), detail=storage.get("detail")),
        )


@dataclass
class Shipper:
    shipper_name: str = ""
    target_type: str = ""
    target_configuration: Any = None

    def to_dict(self) -> dict[str, Any]:
        config = self.target_configuration
        if isinstance(config, OSSShipperConfig):
            config = config.to_dict()
        return {
            "shipperName": self.shipper_name,
            "targetType": self.target_type,
            "targetConfiguration": config,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Shipper:
        target_type = data.get("targetType", "")
        if target_type != OSS_SHIPPER_TYPE:
            raise ValueError(f"unknown target type {target_type}")
        if "targetConfiguration" not in data:
            raise ValueError("missing target configuration")
        raw = data["targetConfiguration"]
        if raw is None:
            config = OSSShipperConfig()
        elif isinstance(raw, dict):
            config = OSSShipperConfig.from_dict(raw)
        else:
            raise ValueError("target configuration is not an object")
        return cls(
            shipper_name=data.get("shipperName", ""),
            target_type=target_type,
            target_configuration=config,
        )

    @classmethod
    def from_json(cls, text: str) -> Shipper:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("shipper document is not an object")
        return cls.from_dict(data)