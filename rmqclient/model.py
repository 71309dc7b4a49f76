"""Client-side data model: heartbeats, subscriptions, running info and offsets."""

from __future__ import annotations

import functools
import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Mapping, Union

PROP_NAMESERVER_ADDR = "PROP_NAMESERVER_ADDR"
PROP_THREADPOOL_CORE_SIZE = "PROP_THREADPOOL_CORE_SIZE"
PROP_CONSUME_ORDERLY = "PROP_CONSUMEORDERLY"
PROP_CONSUME_TYPE = "PROP_CONSUME_TYPE"
PROP_CLIENT_VERSION = "PROP_CLIENT_VERSION"
PROP_CONSUMER_START_TIMESTAMP = "PROP_CONSUMER_START_TIMESTAMP"


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _number(value: float) -> Union[int, float]:
    """Write integral floats without a fractional part."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class ResponseCode(IntEnum):
    """Codes carried by remoting responses."""

    SUCCESS = 0
    ERROR = 1
    FLUSH_DISK_TIMEOUT = 10
    SLAVE_NOT_AVAILABLE = 11
    FLUSH_SLAVE_TIMEOUT = 12
    TOPIC_NOT_EXIST = 17
    PULL_NOT_FOUND = 19
    PULL_RETRY_IMMEDIATELY = 20
    PULL_OFFSET_MOVED = 21
    QUERY_NOT_FOUND = 22


class ServiceState(IntEnum):
    CREATE_JUST = 0
    START_FAILED = 1
    RUNNING = 2
    SHUTDOWN = 3


@dataclass(frozen=True)
class MessageQueue:
    """One queue of a topic on a broker."""

    topic: str = ""
    broker_name: str = ""
    queue_id: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"topic": self.topic, "brokerName": self.broker_name, "queueId": self.queue_id}

    @classmethod
    def from_dict(cls, data: Any) -> "MessageQueue":
        if not isinstance(data, dict):
            raise ValueError(f"message queue must be an object, got {data!r}")
        queue_id = data.get("queueId", 0)
        if isinstance(queue_id, bool) or not isinstance(queue_id, int):
            raise ValueError(f"invalid queueId: {queue_id!r}")
        return cls(
            topic=str(data.get("topic", "")),
            broker_name=str(data.get("brokerName", "")),
            queue_id=queue_id,
        )


@dataclass
class FindBrokerResult:
    broker_addr: str = ""
    slave: bool = False
    broker_version: int = 0


@dataclass
class SubscriptionData:
    """What a consumer group subscribes to on one topic."""

    class_filter_mode: bool = False
    topic: str = ""
    sub_string: str = ""
    tags: set[str] = field(default_factory=set)
    codes: set[str] = field(default_factory=set)
    sub_version: int = 0
    exp_type: str = ""

    def clone(self) -> "SubscriptionData":
        return SubscriptionData(
            class_filter_mode=self.class_filter_mode,
            topic=self.topic,
            sub_string=self.sub_string,
            tags=set(self.tags),
            codes=set(self.codes),
            sub_version=self.sub_version,
            exp_type=self.exp_type,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "classFilterMode": self.class_filter_mode,
            "topic": self.topic,
            "subString": self.sub_string,
            "tagsSet": sorted(self.tags),
            "codeSet": sorted(self.codes),
            "subVersion": self.sub_version,
            "expressionType": self.exp_type,
        }


@dataclass
class ProducerData:
    group_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"groupName": self.group_name}


@dataclass
class ConsumerData:
    group_name: str = ""
    consume_type: str = ""
    message_model: str = ""
    where: str = ""
    subscription_datas: list[SubscriptionData] = field(default_factory=list)
    unit_mode: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "groupName": self.group_name,
            "consumeType": self.consume_type,
            "messageModel": self.message_model,
            "consumeFromWhere": self.where,
            "subscriptionDataSet": [sub.to_dict() for sub in self.subscription_datas],
            "unitMode": self.unit_mode,
        }


@dataclass
class HeartbeatData:
    """Heartbeat payload; producers and consumers are unique by group name."""

    client_id: str = ""
    producer_datas: dict[str, ProducerData] = field(default_factory=dict)
    consumer_datas: dict[str, ConsumerData] = field(default_factory=dict)

    def add_producer(self, data: ProducerData) -> None:
        self.producer_datas[data.group_name] = data

    def add_consumer(self, data: ConsumerData) -> None:
        self.consumer_datas[data.group_name] = data

    def encode(self) -> bytes:
        payload = {
            "clientID": self.client_id,
            "producerDataSet": [p.to_dict() for p in self.producer_datas.values()],
            "consumerDataSet": [c.to_dict() for c in self.consumer_datas.values()],
        }
        return _dumps(payload).encode("utf-8")


@dataclass
class ProcessQueueInfo:
    commit_offset: int = 0
    cached_msg_min_offset: int = 0
    cached_msg_max_offset: int = 0
    cached_msg_count: int = 0
    cached_msg_size_in_mib: int = 0
    transaction_msg_min_offset: int = 0
    transaction_msg_max_offset: int = 0
    transaction_msg_count: int = 0
    locked: bool = False
    try_unlock_times: int = 0
    last_lock_timestamp: int = 0
    dropped: bool = False
    last_pull_timestamp: int = 0
    last_consume_timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "commitOffset": self.commit_offset,
            "cachedMsgMinOffset": self.cached_msg_min_offset,
            "cachedMsgMaxOffset": self.cached_msg_max_offset,
            "cachedMsgCount": self.cached_msg_count,
            "cachedMsgSizeInMiB": self.cached_msg_size_in_mib,
            "transactionMsgMinOffset": self.transaction_msg_min_offset,
            "transactionMsgMaxOffset": self.transaction_msg_max_offset,
            "transactionMsgCount": self.transaction_msg_count,
            "locked": self.locked,
            "tryUnlockTimes": self.try_unlock_times,
            "lastLockTimestamp": self.last_lock_timestamp,
            "dropped": self.dropped,
            "lastPullTimestamp": self.last_pull_timestamp,
            "lastConsumeTimestamp": self.last_consume_timestamp,
        }


@dataclass
class ConsumeStatus:
    pull_rt: float = 0.0
    pull_tps: float = 0.0
    consume_rt: float = 0.0
    consume_ok_tps: float = 0.0
    consume_failed_tps: float = 0.0
    consume_failed_msgs: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "pullRT": _number(self.pull_rt),
            "pullTPS": _number(self.pull_tps),
            "consumeRT": _number(self.consume_rt),
            "consumeOKTPS": _number(self.consume_ok_tps),
            "consumeFailedTPS": _number(self.consume_failed_tps),
            "consumeFailedMsgs": self.consume_failed_msgs,
        }


def _compare_subscriptions(a: SubscriptionData, b: SubscriptionData) -> int:
    if a.class_filter_mode != b.class_filter_mode:
        return -1 if not a.class_filter_mode else 1
    if a.sub_version != b.sub_version:
        return -1 if a.sub_version > b.sub_version else 1
    for left, right in (
        (_dumps(sorted(a.tags)), _dumps(sorted(b.tags))),
        (_dumps(sorted(a.codes)), _dumps(sorted(b.codes))),
    ):
        if left != right:
            return -1 if left.encode("utf-8") > right.encode("utf-8") else 1
    return 0


@dataclass
class ConsumerRunningInfo:
    """Snapshot of a consumer's state, reported on the broker's request."""

    properties: dict[str, str] = field(default_factory=dict)
    subscription_data: list[SubscriptionData] = field(default_factory=list)
    mq_table: dict[MessageQueue, ProcessQueueInfo] = field(default_factory=dict)
    status_table: dict[str, ConsumeStatus] = field(default_factory=dict)
    jstack: str = ""

    def encode(self) -> bytes:
        """Encode in the broker's layout, where mqTable keys are JSON objects."""
        subs = sorted(self.subscription_data, key=functools.cmp_to_key(_compare_subscriptions))
        status = {key: value.to_dict() for key, value in self.status_table.items()}
        head = (
            '{"properties":' + _dumps(dict(sorted(self.properties.items())))
            + ',"statusTable":' + _dumps(dict(sorted(status.items())))
            + ',"subscriptionSet":' + _dumps([sub.to_dict() for sub in subs])
        )
        queues = sorted(self.mq_table, key=lambda q: (q.topic, q.broker_name, q.queue_id))
        table = ",".join(
            f"{_dumps(queue.to_dict())}:{_dumps(self.mq_table[queue].to_dict())}"
            for queue in queues
        )
        text = f'{head},"mqTable":{{{table}}}, "jstack":{_dumps(self.jstack)} }}'
        return text.encode("utf-8")


class ConsumeResult(IntEnum):
    CONSUME_SUCCESS = 0
    CONSUME_RETRY_LATER = 1
    ROLLBACK = 2
    COMMIT = 3
    THROW_EXCEPTION = 4
    RETURN_NULL = 5


@dataclass
class ConsumeMessageDirectlyResult:
    order: bool = False
    auto_commit: bool = False
    consume_result: ConsumeResult = ConsumeResult.CONSUME_SUCCESS
    remark: str = ""
    spent_time_mills: int = 0

    def encode(self) -> bytes:
        payload = {
            "order": self.order,
            "autoCommit": self.auto_commit,
            "consumeResult": int(self.consume_result),
            "remark": self.remark,
            "spentTimeMills": self.spent_time_mills,
        }
        return _dumps(payload).encode("utf-8")


def _extract_raw_value(text: str, key: str) -> str:
    """Return the raw text of ``key``'s value in loosely JSON-shaped text."""
    marker = f'"{key}"'
    pos = text.find(marker)
    if pos < 0:
        return ""
    pos += len(marker)
    while pos < len(text) and text[pos].isspace():
        pos += 1
    if pos >= len(text) or text[pos] != ":":
        return ""
    pos += 1
    while pos < len(text) and text[pos].isspace():
        pos += 1
    if pos >= len(text):
        return ""
    start = pos
    if text[pos] not in "{[":
        while pos < len(text) and text[pos] not in ",}]":
            pos += 1
        return text[start:pos].strip()
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return text[start:]


def _parse_offset(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"invalid offset: {value!r}")
    return value


@dataclass
class ResetOffsetBody:
    offset_table: dict[MessageQueue, int] = field(default_factory=dict)

    @classmethod
    def decode(cls, body: Union[bytes, str]) -> "ResetOffsetBody":
        """Decode either the gson list-of-pairs form or the fastjson object-key form."""
        text = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
        try:
            payload = json.loads(text)
        except ValueError:
            return cls(offset_table=_parse_fastjson_format(text))
        return cls(offset_table=_parse_gson_format(payload))


def _parse_gson_format(payload: Any) -> dict[MessageQueue, int]:
    table = payload.get("offsetTable") if isinstance(payload, dict) else None
    if not table:
        return {}
    if not isinstance(table, list):
        raise ValueError("offsetTable must be a list of [queue, offset] pairs")
    result: dict[MessageQueue, int] = {}
    for entry in table:
        if not isinstance(entry, list) or len(entry) != 2:
            raise ValueError(f"invalid offset table entry: {entry!r}")
        result[MessageQueue.from_dict(entry[0])] = _parse_offset(entry[1])
    return result


def _parse_fastjson_format(text: str) -> dict[MessageQueue, int]:
    raw = _extract_raw_value(text, "offsetTable")
    if len(raw) <= 2:
        return {}
    result: dict[MessageQueue, int] = {}
    for part in raw[2:-1].split(",{"):
        queue_text, sep, offset_text = part.partition("}:")
        if not sep:
            raise ValueError(f"invalid offset table entry: {part!r}")
        queue = MessageQueue.from_dict(json.loads("{" + queue_text + "}"))
        result[queue] = int(offset_text.strip())
    return result


@dataclass
class SendMessageResponse:
    msg_id: str = ""
    queue_id: int = 0
    queue_offset: int = 0
    transaction_id: str = ""
    msg_region: str = ""


@dataclass
class PullMessageResponse:
    suggest_which_broker_id: int = 0
    next_begin_offset: int = 0
    min_offset: int = 0
    max_offset: int = 0