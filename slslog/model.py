"""Request and response models for querying log stores and configuring indexes."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

CHARGE_BY_FUNCTION = "ChargeByFunction"
CHARGE_BY_DATA_INGEST = "ChargeByDataIngest"

STORE_VIEW_STORE_TYPE_LOGSTORE = "logstore"
STORE_VIEW_STORE_TYPE_METRICSTORE = "metricstore"

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _dumps(value: Any) -> str:
    """Compact JSON with HTML-sensitive characters escaped, as the service expects."""
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def _param(value: Any) -> str:
    """Format a URL query value: booleans as true/false, numbers truncated to integers."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(int(value))
    return str(value)


def _bool_num_str(value: Optional[bool]) -> str:
    if value is None:
        return ""
    return "1" if value else "0"


def _int_str(value: Optional[int]) -> str:
    return "" if value is None else str(value)


@dataclass
class GetLogRequest:
    """Query for logs in the time range [from_time, to_time)."""

    from_time: int = 0
    to_time: int = 0
    topic: str = ""
    lines: int = 0
    offset: int = 0
    reverse: bool = False
    query: str = ""
    power_sql: bool = False
    from_ns_part: int = 0
    to_ns_part: int = 0
    need_highlight: bool = False
    is_accurate: bool = False

    def to_url_params(self) -> dict[str, str]:
        pairs = (
            ("type", "log"),
            ("from", self.from_time),
            ("to", self.to_time),
            ("topic", self.topic),
            ("line", self.lines),
            ("offset", self.offset),
            ("reverse", self.reverse),
            ("powerSql", self.power_sql),
            ("query", self.query),
            ("fromNs", self.from_ns_part),
            ("toNs", self.to_ns_part),
            ("highlight", self.need_highlight),
            ("accurate", self.is_accurate),
        )
        return {name: _param(value) for name, value in pairs}

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_time,
            "to": self.to_time,
            "topic": self.topic,
            "line": self.lines,
            "offset": self.offset,
            "reverse": self.reverse,
            "query": self.query,
            "powerSql": self.power_sql,
            "fromNs": self.from_ns_part,
            "toNs": self.to_ns_part,
            "highlight": self.need_highlight,
            "accurate": self.is_accurate,
        }


@dataclass
class PullLogRequest:
    """Request to pull raw log groups from one shard."""

    project: str = ""
    logstore: str = ""
    shard_id: int = 0
    cursor: str = ""
    end_cursor: str = ""
    log_group_max_count: int = 0
    query: str = ""
    pull_mode: str = ""
    query_id: str = ""
    compress_type: int = 0

    def to_url_params(self) -> dict[str, str]:
        params = {
            "type": "logs",
            "cursor": self.cursor,
            "count": str(self.log_group_max_count),
        }
        if self.end_cursor:
            params["end_cursor"] = self.end_cursor
        if self.query:
            params["query"] = self.query
            params["pullMode"] = "scan_on_stream"
            if self.query_id:
                params["queryId"] = self.query_id
        return params


@dataclass
class PullLogMeta:
    next_cursor: str = ""
    netflow: int = 0
    raw_size: int = 0
    raw_data_count_before_query: int = 0
    raw_size_before_query: int = 0
    lines: int = 0
    lines_before_query: int = 0
    failed_lines: int = 0
    data_count_before_query: int = 0


@dataclass
class SingleHistogram:
    progress: str = ""
    count: int = 0
    from_time: int = 0
    to_time: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SingleHistogram:
        return cls(
            progress=data.get("progress", ""),
            count=data.get("count", 0),
            from_time=data.get("from", 0),
            to_time=data.get("to", 0),
        )


@dataclass
class GetHistogramsResponse:
    progress: str = ""
    count: int = 0
    histograms: list[SingleHistogram] = field(default_factory=list)

    def is_complete(self) -> bool:
        return self.progress.lower() == "complete"


@dataclass
class GetLogsResponse:
    progress: str = ""
    count: int = 0
    logs: list[dict[str, str]] = field(default_factory=list)
    contents: str = ""
    has_sql: bool = False
    header: dict[str, list[str]] = field(default_factory=dict)

    def is_complete(self) -> bool:
        return self.progress.lower() == "complete"

    def get_keys(self) -> list[str]:
        """Return the "keys" entry of the query info held in ``contents``."""
        content = json.loads(self.contents)
        if content is None:
            return []
        if not isinstance(content, dict):
            raise ValueError("query info is not a JSON object")
        for name, value in content.items():
            if value is not None and not isinstance(value, list):
                raise ValueError(f"query info entry {name!r} is not a list")
        keys = content.get("keys") or []
        for key in keys:
            if not isinstance(key, str):
                raise TypeError(f"query info key {key!r} is not a string")
        return list(keys)


@dataclass
class MetaTerm:
    key: str = ""
    term: str = ""


@dataclass
class PhraseQueryInfoV2:
    scan_all: str = ""
    begin_offset: str = ""
    end_offset: str = ""
    end_time: str = ""

    def to_dict(self) -> dict[str, str]:
        pairs = (
            ("scanAll", self.scan_all),
            ("beginOffset", self.begin_offset),
            ("endOffset", self.end_offset),
            ("endTime", self.end_time),
        )
        return {name: value for name, value in pairs if value}


@dataclass
class PhraseQueryInfoV3:
    scan_all: Optional[bool] = None
    begin_offset: Optional[int] = None
    end_offset: Optional[int] = None
    end_time: Optional[int] = None

    def to_v2(self) -> PhraseQueryInfoV2:
        return PhraseQueryInfoV2(
            scan_all=_bool_num_str(self.scan_all),
            begin_offset=_int_str(self.begin_offset),
            end_offset=_int_str(self.end_offset),
            end_time=_int_str(self.end_time),
        )


@dataclass
class GetLogsV3ResponseMeta:
    progress: str = ""
    agg_query: str = ""
    where_query: str = ""
    has_sql: bool = False
    processed_rows: int = 0
    elapsed_millisecond: int = 0
    cpu_sec: float = 0.0
    cpu_cores: float = 0.0
    limited: int = 0
    count: int = 0
    processed_bytes: int = 0
    telemetry_type: str = ""
    power_sql: bool = False
    inserted_sql: str = ""
    keys: list[str] = field(default_factory=list)
    terms: list[MetaTerm] = field(default_factory=list)
    marker: Optional[str] = None
    mode: Optional[int] = None
    phrase_query_info: Optional[PhraseQueryInfoV3] = None
    shard: Optional[int] = None
    scan_bytes: Optional[int] = None
    is_accurate: Optional[bool] = None
    column_types: list[str] = field(default_factory=list)
    highlights: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GetLogsV3ResponseMeta:
        phrase = data.get("phraseQueryInfo")
        return cls(
            progress=data.get("progress", ""),
            agg_query=data.get("aggQuery", ""),
            where_query=data.get("whereQuery", ""),
            has_sql=data.get("hasSQL", False),
            processed_rows=data.get("processedRows", 0),
            elapsed_millisecond=data.get("elapsedMillisecond", 0),
            cpu_sec=data.get("cpuSec", 0.0),
            cpu_cores=data.get("cpuCores", 0.0),
            limited=data.get("limited", 0),
            count=data.get("count", 0),
            processed_bytes=data.get("processedBytes", 0),
            telemetry_type=data.get("telementryType", ""),
            power_sql=data.get("powerSql", False),
            inserted_sql=data.get("insertedSQL", ""),
            keys=list(data.get("keys") or []),
            terms=[
                MetaTerm(key=term.get("key", ""), term=term.get("term", ""))
                for term in data.get("terms") or []
            ],
            marker=data.get("marker"),
            mode=data.get("mode"),
            phrase_query_info=None
            if phrase is None
            else PhraseQueryInfoV3(
                scan_all=phrase.get("scanAll"),
                begin_offset=phrase.get("beginOffset"),
                end_offset=phrase.get("endOffset"),
                end_time=phrase.get("endTime"),
            ),
            shard=data.get("shard"),
            scan_bytes=data.get("scanBytes"),
            is_accurate=data.get("isAccurate"),
            column_types=list(data.get("columnTypes") or []),
            highlights=[dict(item) for item in data.get("highlights") or []],
        )

    def construct_query_info(self) -> str:
        """Build the JSON query-info document of the older response format."""
        info: dict[str, Any] = {}
        if self.keys:
            info["keys"] = list(self.keys)
        terms = [[term.term, term.key] for term in self.terms]
        if terms:
            info["terms"] = terms
        if self.limited != 0:
            info["limited"] = str(self.limited)
        if self.marker is not None:
            info["marker"] = self.marker
        if self.mode is not None:
            info["mode"] = self.mode
        if self.phrase_query_info is not None:
            info["phraseQueryInfo"] = self.phrase_query_info.to_v2().to_dict()
        if self.shard is not None:
            info["shard"] = self.shard
        if self.scan_bytes is not None:
            info["scanBytes"] = self.scan_bytes
        if self.is_accurate is not None:
            info["isAccurate"] = 1 if self.is_accurate else 0
        if self.column_types:
            info["columnTypes"] = list(self.column_types)
        if self.highlights:
            info["highlight"] = [dict(item) for item in self.highlights]
        return _dumps(info)


@dataclass
class GetLogsV3Response:
    meta: GetLogsV3ResponseMeta = field(default_factory=GetLogsV3ResponseMeta)
    logs: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GetLogsV3Response:
        return cls(
            meta=GetLogsV3ResponseMeta.from_dict(data.get("meta") or {}),
            logs=[dict(item) for item in data.get("data") or []],
        )

    def is_complete(self) -> bool:
        return self.meta.progress.lower() == "complete"


@dataclass
class GetLogLinesResponse(GetLogsResponse):
    """Logs response whose lines are kept as raw JSON texts."""

    lines: list[str] = field(default_factory=list)


@dataclass
class GetContextLogsResponse:
    progress: str = ""
    total_lines: int = 0
    back_lines: int = 0
    forward_lines: int = 0
    logs: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GetContextLogsResponse:
        return cls(
            progress=data.get("progress", ""),
            total_lines=data.get("total_lines", 0),
            back_lines=data.get("back_lines", 0),
            forward_lines=data.get("forward_lines", 0),
            logs=[dict(item) for item in data.get("logs") or []],
        )

    def is_complete(self) -> bool:
        return self.progress.lower() == "complete"


@dataclass
class JsonKey:
    type: str = ""
    alias: str = ""
    doc_value: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type}
        if self.alias:
            result["alias"] = self.alias
        if self.doc_value:
            result["doc_value"] = True
        return result


@dataclass
class IndexKey:
    token: Optional[list[str]] = None
    case_sensitive: bool = False
    type: str = ""
    doc_value: bool = False
    alias: str = ""
    chn: bool = False
    json_keys: dict[str, Optional[JsonKey]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "token": None if self.token is None else list(self.token),
            "caseSensitive": self.case_sensitive,
            "type": self.type,
        }
        if self.doc_value:
            result["doc_value"] = True
        if self.alias:
            result["alias"] = self.alias
        result["chn"] = self.chn
        if self.json_keys:
            result["json_keys"] = {
                name: None if key is None else key.to_dict()
                for name, key in self.json_keys.items()
            }
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IndexKey:
        token = data.get("token")
        return cls(
            token=None if token is None else list(token),
            case_sensitive=data.get("caseSensitive", False),
            type=data.get("type", ""),
            doc_value=data.get("doc_value", False),
            alias=data.get("alias", ""),
            chn=data.get("chn", False),
            json_keys={
                name: None
                if value is None
                else JsonKey(
                    type=value.get("type", ""),
                    alias=value.get("alias", ""),
                    doc_value=value.get("doc_value", False),
                )
                for name, value in (data.get("json_keys") or {}).items()
            },
        )


@dataclass
class IndexLine:
    token: Optional[list[str]] = None
    case_sensitive: bool = False
    include_keys: list[str] = field(default_factory=list)
    exclude_keys: list[str] = field(default_factory=list)
    chn: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "token": None if self.token is None else list(self.token),
            "caseSensitive": self.case_sensitive,
        }
        if self.include_keys:
            result["include_keys"] = list(self.include_keys)
        if self.exclude_keys:
            result["exclude_keys"] = list(self.exclude_keys)
        result["chn"] = self.chn
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IndexLine:
        token = data.get("token")
        return cls(
            token=None if token is None else list(token),
            case_sensitive=data.get("caseSensitive", False),
            include_keys=list(data.get("include_keys") or []),
            exclude_keys=list(data.get("exclude_keys") or []),
            chn=data.get("chn", False),
        )


@dataclass
class Index:
    """Index configuration of a log store."""

    keys: dict[str, IndexKey] = field(default_factory=dict)
    line: Optional[IndexLine] = None
    ttl: int = 0
    max_text_len: int = 0
    log_reduce: bool = False
    log_reduce_white_list: list[str] = field(default_factory=list)
    log_reduce_black_list: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.keys:
            result["keys"] = {name: key.to_dict() for name, key in self.keys.items()}
        if self.line is not None:
            result["line"] = self.line.to_dict()
        if self.ttl:
            result["ttl"] = self.ttl
        if self.max_text_len:
            result["max_text_len"] = self.max_text_len
        result["log_reduce"] = self.log_reduce
        if self.log_reduce_white_list:
            result["log_reduce_white_list"] = list(self.log_reduce_white_list)
        if self.log_reduce_black_list:
            result["log_reduce_black_list"] = list(self.log_reduce_black_list)
        return result

    def to_json(self) -> str:
        return _dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Index:
        line = data.get("line")
        return cls(
            keys={
                name: IndexKey.from_dict(value or {})
                for name, value in (data.get("keys") or {}).items()
            },
            line=None if line is None else IndexLine.from_dict(line),
            ttl=data.get("ttl", 0),
            max_text_len=data.get("max_text_len", 0),
            log_reduce=data.get("log_reduce", False),
            log_reduce_white_list=list(data.get("log_reduce_white_list") or []),
            log_reduce_black_list=list(data.get("log_reduce_black_list") or []),
        )


_DEFAULT_TOKENS = (
    " ", "\n", "\t", "\r", ",", ";", "[", "]", "{", "}", "(", ")", "&", "^",
    "*", "#", "@", "~", "=", "<", ">", "/", "\\", "?", ":", "'", '"',
)


def create_default_index() -> Index:
    """Return a full-text index configuration."""
    return Index(line=IndexLine(token=list(_DEFAULT_TOKENS), case_sensitive=False))


@dataclass
class GetMeteringModeResponse:
    metering_mode: str = ""


@dataclass
class StoreViewStore:
    project: str = ""
    store_name: str = ""
    query: str = ""

    def to_dict(self) -> dict[str, str]:
        result = {"project": self.project, "storeName": self.store_name}
        if self.query:
            result["query"] = self.query
        return result


@dataclass
class StoreView:
    name: str = ""
    store_type: str = ""
    stores: list[StoreViewStore] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "storeType": self.store_type,
            "stores": [store.to_dict() for store in self.stores],
        }


@dataclass
class ListStoreViewsRequest:
    offset: int = 0
    size: int = 0


@dataclass
class ListStoreViewsResponse:
    total: int = 0
    count: int = 0
    store_views: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ListStoreViewsResponse:
        return cls(
            total=data.get("total", 0),
            count=data.get("count", 0),
            store_views=list(data.get("storeviews") or []),
        )