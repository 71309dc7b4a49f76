"""Topic route data as served by the name server, and what is derived from it."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from rmqclient.model import MessageQueue
from rmqclient.perm import queue_is_readable, queue_is_writeable

MASTER_ID = 0


@dataclass
class QueueData:
    """Queue layout of a topic on one broker."""

    broker_name: str = ""
    read_queue_nums: int = 0
    write_queue_nums: int = 0
    perm: int = 0
    topic_syn_flag: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "brokerName": self.broker_name,
            "readQueueNums": self.read_queue_nums,
            "writeQueueNums": self.write_queue_nums,
            "perm": self.perm,
            "topicSynFlag": self.topic_syn_flag,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "QueueData":
        if not isinstance(data, dict):
            raise ValueError(f"queue data must be an object, got {data!r}")
        return cls(
            broker_name=str(data.get("brokerName", "")),
            read_queue_nums=int(data.get("readQueueNums", 0)),
            write_queue_nums=int(data.get("writeQueueNums", 0)),
            perm=int(data.get("perm", 0)),
            topic_syn_flag=int(data.get("topicSynFlag", 0)),
        )


@dataclass
class BrokerData:
    """A named broker group: broker id to address, id 0 being the master."""

    cluster: str = ""
    broker_name: str = ""
    broker_addresses: dict[int, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cluster": self.cluster,
            "brokerName": self.broker_name,
            "brokerAddrs": {
                str(k): v for k, v in sorted(self.broker_addresses.items())
            },
        }


def _parse_broker_id(text: str) -> int:
    try:
        return int(text.replace('"', ""))
    except ValueError:
        return 0


def _quote_numeric_keys(text: str) -> str:
    """Quote bare integer object keys, as in ``{0:"addr"}``, so JSON can parse them."""
    out: list[str] = []
    n = len(text)
    i = 0
    in_string = False
    escaped = False
    while i < n:
        char = text[i]
        if in_string:
            out.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            i += 1
            continue
        if char == '"':
            in_string = True
            out.append(char)
            i += 1
            continue
        out.append(char)
        i += 1
        if char not in "{,":
            continue
        j = i
        while j < n and text[j].isspace():
            j += 1
        k = j
        if k < n and text[k] == "-":
            k += 1
        digits_start = k
        while k < n and text[k].isdigit():
            k += 1
        if k == digits_start:
            continue
        m = k
        while m < n and text[m].isspace():
            m += 1
        if m < n and text[m] == ":":
            out.append(text[i:j])
            out.append('"' + text[j:k] + '"')
            i = k
    return "".join(out)


@dataclass
class TopicRouteData:
    """Which brokers serve a topic and how many queues each holds."""

    order_topic_conf: str = ""
    queue_data_list: list[QueueData] = field(default_factory=list)
    broker_data_list: list[BrokerData] = field(default_factory=list)

    @classmethod
    def decode(cls, data: Union[str, bytes]) -> "TopicRouteData":
        """Parse the name server's route body, which may use bare integer keys."""
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        payload = json.loads(_quote_numeric_keys(text))
        if not isinstance(payload, dict):
            raise ValueError("route data must be a JSON object")
        if "queueDatas" not in payload:
            raise ValueError("route data has no queueDatas")
        queues = payload["queueDatas"] or []
        if not isinstance(queues, list):
            raise ValueError("queueDatas must be a list")
        brokers = payload.get("brokerDatas") or []
        if not isinstance(brokers, list):
            brokers = []
        broker_list = []
        for item in brokers:
            if not isinstance(item, dict):
                raise ValueError(f"broker data must be an object, got {item!r}")
            addrs = item.get("brokerAddrs") or {}
            if not isinstance(addrs, dict):
                raise ValueError("brokerAddrs must be an object")
            broker_list.append(
                BrokerData(
                    cluster=str(item.get("cluster", "")),
                    broker_name=str(item.get("brokerName", "")),
                    broker_addresses={
                        _parse_broker_id(str(k)): str(v) for k, v in addrs.items()
                    },
                )
            )
        return cls(
            queue_data_list=[QueueData.from_dict(q) for q in queues],
            broker_data_list=broker_list,
        )

    def clone(self) -> "TopicRouteData":
        """Copy the lists; the queue and broker entries themselves are shared."""
        return TopicRouteData(
            order_topic_conf=self.order_topic_conf,
            queue_data_list=list(self.queue_data_list),
            broker_data_list=list(self.broker_data_list),
        )

    def to_json(self) -> str:
        payload = {
            "OrderTopicConf": self.order_topic_conf,
            "queueDatas": [q.to_dict() for q in self.queue_data_list],
            "brokerDatas": [b.to_dict() for b in self.broker_data_list],
        }
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)

    def __str__(self) -> str:
        return self.to_json()


@dataclass
class TopicPublishInfo:
    """Writable queues of a topic, with a round-robin cursor."""

    order_topic: bool = False
    have_topic_router_info: bool = False
    mq_list: list[MessageQueue] = field(default_factory=list)
    route_data: Optional[TopicRouteData] = None
    topic_queue_index: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def is_ok(self) -> bool:
        return len(self.mq_list) > 0

    def fetch_queue_index(self) -> int:
        """Advance the cursor and return the next queue index, or -1 if none."""
        length = len(self.mq_list)
        if length <= 0:
            return -1
        with self._lock:
            self.topic_queue_index += 1
            index = self.topic_queue_index
        return index % length


def route_data_to_publish_info(topic: str, data: TopicRouteData) -> TopicPublishInfo:
    """List the queues a producer may send to."""
    info = TopicPublishInfo(route_data=data, order_topic=False)

    if data.order_topic_conf:
        for broker in data.order_topic_conf.split(";"):
            name, sep, count = broker.partition(":")
            if not sep:
                raise ValueError(f"invalid order topic conf entry: {broker!r}")
            try:
                nums = int(count.split(":")[0])
            except ValueError:
                nums = 0
            info.mq_list.extend(
                MessageQueue(topic=topic, broker_name=name, queue_id=i)
                for i in range(nums)
            )
        info.order_topic = True
        return info

    brokers = {}
    for bd in data.broker_data_list:
        brokers.setdefault(bd.broker_name, bd)
    for qd in data.queue_data_list:
        if not queue_is_writeable(qd.perm):
            continue
        broker = brokers.get(qd.broker_name)
        if broker is None or not broker.broker_addresses.get(MASTER_ID):
            continue
        info.mq_list.extend(
            MessageQueue(topic=topic, broker_name=qd.broker_name, queue_id=i)
            for i in range(qd.write_queue_nums)
        )
    return info


def route_data_to_subscribe_info(topic: str, data: TopicRouteData) -> list[MessageQueue]:
    """List the queues a consumer may read from."""
    return [
        MessageQueue(topic=topic, broker_name=qd.broker_name, queue_id=i)
        for qd in data.queue_data_list
        if queue_is_readable(qd.perm)
        for i in range(qd.read_queue_nums)
    ]


def topic_route_data_changed(
    old_data: Optional[TopicRouteData], new_data: Optional[TopicRouteData]
) -> bool:
    """Compare two routes regardless of the order of their entries."""
    if old_data is None or new_data is None:
        return True

    def normalised(data: TopicRouteData) -> tuple[list[QueueData], list[BrokerData]]:
        return (
            sorted(data.queue_data_list, key=lambda q: q.broker_name, reverse=True),
            sorted(data.broker_data_list, key=lambda b: b.broker_name, reverse=True),
        )

    return normalised(old_data) != normalised(new_data)