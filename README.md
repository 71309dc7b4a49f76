# rmqclient

This package holds client-side building blocks for the remoting protocol of RocketMQ-style message brokers and name servers. It is pure Python and has no third-party dependencies.

## What it contains

- `rmqclient.remote.codec` handles commands on the wire.
  - `RemotingCommand` is a request or a response.
  - `new_remoting_command(code, header, body)` builds a command and gives it a fresh opaque id.
  - `encode(command, codec)` and `decode(data)` turn a command into a frame and read it back. The frame is a 4-byte size, then the marked header length, then the header, then the body.
  - The header can use the JSON format (`CodecType.JSON`) or the compact binary format (`CodecType.ROCKETMQ`). Each format has its own helpers: `encode_json_header` / `decode_json_header` and `encode_rmq_header` / `decode_rmq_header`.
  - `RemotingCommand.write_to(stream, codec)` writes one frame to a binary stream.
  - `RPCHook` is an abstract hook for work to do before a request and after a response.
- `rmqclient.remote.future.ResponseFuture` tracks the response to one request, keyed by its opaque id.
  - `set_response` and `set_error` complete the future.
  - `wait_response(timeout)` blocks until the future completes. If no response arrives in time it raises `RequestTimeoutError`.
  - The callback runs at most once.
- `rmqclient.request` holds the request codes and their headers.
  - `RequestCode` lists the request codes.
  - There is one dataclass header per request, for example `SendMessageRequestHeader`, `PullMessageRequestHeader` and `GetRouteInfoRequestHeader`.
  - Each header's `encode()` returns the ext-fields mapping.
  - Some headers also have a `decode(properties)` classmethod. These are `CheckTransactionStateRequestHeader`, `GetConsumerRunningInfoHeader`, `ResetOffsetHeader`, `ConsumeMessageDirectlyHeader` and `ReplyMessageRequestHeader`.
- `rmqclient.model` holds the client data model.
  - `ResponseCode` lists the response codes.
  - `MessageQueue` identifies one queue.
  - `SubscriptionData` describes a subscription.
  - `HeartbeatData` is the heartbeat payload. It keeps producers and consumers unique by group name.
  - `ConsumerRunningInfo.encode()` produces the broker's layout.
  - `ConsumeMessageDirectlyResult` is the result of consuming a message directly.
  - `ResetOffsetBody.decode(body)` reads both the list-of-pairs offset table and the object-key offset table.
- `rmqclient.routedata` holds topic route data.
  - `TopicRouteData.decode(data)` parses a route. It accepts bare integer broker-id keys.
  - `route_data_to_publish_info` lists the writable queues that have a master broker.
  - `route_data_to_subscribe_info` lists the readable queues.
  - `topic_route_data_changed` compares two routes regardless of entry order.
  - `TopicPublishInfo.fetch_queue_index()` picks queues in round-robin order.
- `rmqclient.rrfuture` matches replies to waiting requests.
  - `RequestResponseFuture` waits for the reply to one request message.
  - `RequestResponseFutureMap` is an expiring map keyed by correlation id. Its `set_response`, `remove` and `purge_expired` methods run the futures' callbacks.
- `rmqclient.perm` has the queue permission checks and `perm_to_string`.
- `rmqclient.constants` has well-known names, `get_retry_topic` and `get_reply_topic`.

## Install

```
pip install .
```

To also install the test dependencies:

```
pip install ".[test]"
```

## Examples

Encode a command with the binary header format and decode it again:

```python
from rmqclient.remote.codec import CodecType, decode, encode, new_remoting_command
from rmqclient.request import GetRouteInfoRequestHeader, RequestCode

cmd = new_remoting_command(RequestCode.GET_ROUTE_INFO_BY_TOPIC,
                           GetRouteInfoRequestHeader(topic="orders"), b"")
frame = encode(cmd, CodecType.ROCKETMQ)
decoded = decode(frame[4:])  # strip the leading frame size
assert decoded.ext_fields["topic"] == "orders"
```

Turn a route body into the queues a producer may send to:

```python
from rmqclient.routedata import TopicRouteData, route_data_to_publish_info

body = ('{"queueDatas":[{"brokerName":"b1","readQueueNums":2,"writeQueueNums":2,"perm":6}],'
        '"brokerDatas":[{"cluster":"c1","brokerName":"b1","brokerAddrs":{0:"127.0.0.1:10911"}}]}')
route = TopicRouteData.decode(body)
info = route_data_to_publish_info("orders", route)
assert [q.queue_id for q in info.mq_list] == [0, 1]
```

## What it does not do

This package builds and parses protocol data, but it does no networking.

- There is no TCP transport. Nothing here opens connections, sends frames or dispatches requests that a server pushes.
- There is no name-server client that looks up or caches routes.
- There is no producer or consumer.

A caller who wants any of these must supply the I/O. `encode`, `decode` and `ResponseFuture` are the pieces to build it with.

## Tests

```
pytest
```