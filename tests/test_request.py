from datetime import timedelta

import pytest

from rmqclient.request import (
    CheckTransactionStateRequestHeader,
    ConsumeMessageDirectlyHeader,
    ConsumerSendMsgBackRequestHeader,
    CreateTopicRequestHeader,
    DeleteTopicRequestHeader,
    EndTransactionRequestHeader,
    GetConsumeStatsRequestHeader,
    GetConsumerListRequestHeader,
    GetConsumerRunningInfoHeader,
    GetMaxOffsetRequestHeader,
    GetRouteInfoRequestHeader,
    PullMessageRequestHeader,
    QueryConsumerOffsetRequestHeader,
    QueryMessageRequestHeader,
    QueryTopicConsumeByWhoRequestHeader,
    ReplyMessageRequestHeader,
    RequestCode,
    ResetOffsetHeader,
    SearchOffsetRequestHeader,
    SendMessageRequestHeader,
    SendMessageRequestV2Header,
    TopicListRequestHeader,
    UpdateConsumerOffsetRequestHeader,
    ViewMessageRequestHeader,
)


def test_request_code_lookup_by_value():
    assert RequestCode(105) is RequestCode.GET_ROUTE_INFO_BY_TOPIC
    assert RequestCode(326) is RequestCode.PUSH_REPLY_MESSAGE_TO_CLIENT
    with pytest.raises(ValueError):
        RequestCode(13)


def test_send_message_header_fixed_defaults():
    header = SendMessageRequestHeader(
        producer_group="pg",
        topic="t1",
        queue_id=3,
        born_timestamp=1574791577504,
        unit_mode=True,
        default_topic="ignored",
        default_topic_queue_nums=16,
    )
    encoded = header.encode()
    assert encoded["defaultTopic"] == "TBW102"
    assert encoded["defaultTopicQueueNums"] == "4"
    assert encoded["unitMode"] == "true"
    assert encoded["batch"] == "false"
    assert encoded["queueId"] == "3"
    assert encoded["bornTimestamp"] == "1574791577504"
    assert encoded["producerGroup"] == "pg"
    assert len(encoded) == 13


def test_send_message_v2_header_short_keys():
    header = SendMessageRequestV2Header(
        producer_group="pg",
        topic="t1",
        default_topic="dt",
        default_topic_queue_nums=8,
        queue_id=2,
        properties="k=v",
        batch=True,
    )
    encoded = header.encode()
    assert sorted(encoded) == list("abcdefghijklm")
    assert encoded["a"] == "pg"
    assert encoded["b"] == "t1"
    assert encoded["c"] == "dt"
    assert encoded["d"] == "8"
    assert encoded["e"] == "2"
    assert encoded["i"] == "k=v"
    assert encoded["m"] == "true"
    assert encoded["k"] == "false"


def test_end_transaction_header_encode():
    header = EndTransactionRequestHeader(
        producer_group="pg",
        tran_state_table_offset=11,
        commit_log_offset=22,
        commit_or_rollback=8,
        from_transaction_check=True,
        msg_id="m1",
        transaction_id="tx1",
    )
    assert header.encode() == {
        "producerGroup": "pg",
        "tranStateTableOffset": "11",
        "commitLogOffset": "22",
        "commitOrRollback": "8",
        "fromTransactionCheck": "true",
        "msgId": "m1",
        "transactionId": "tx1",
    }


def test_check_transaction_state_decode_overwrites_msg_id():
    header = CheckTransactionStateRequestHeader.decode(
        {
            "tranStateTableOffset": "12",
            "commitLogOffset": "34",
            "msgId": "m1",
            "transactionId": "tx1",
            "offsetMsgId": "off1",
        }
    )
    assert header.tran_state_table_offset == 12
    assert header.commit_log_offset == 34
    assert header.msg_id == "off1"
    assert header.transaction_id == ""
    assert header.offset_msg_id == ""


def test_check_transaction_state_decode_empty_and_bad_numbers():
    assert CheckTransactionStateRequestHeader.decode({}) == CheckTransactionStateRequestHeader()
    header = CheckTransactionStateRequestHeader.decode({"commitLogOffset": "abc"})
    assert header.commit_log_offset == 0


def test_check_transaction_state_encode_keys():
    header = CheckTransactionStateRequestHeader(msg_id="m", transaction_id="t", offset_msg_id="o")
    encoded = header.encode()
    assert encoded["msgId"] == "m"
    assert encoded["transactionId"] == "t"
    assert encoded["offsetMsgId"] == "o"


def test_consumer_send_msg_back_encode():
    header = ConsumerSendMsgBackRequestHeader(
        group="g",
        offset=100,
        delay_level=3,
        origin_msg_id="om",
        origin_topic="ot",
        max_reconsume_times=16,
    )
    encoded = header.encode()
    assert encoded["offset"] == "100"
    assert encoded["delayLevel"] == "3"
    assert encoded["maxReconsumeTimes"] == "16"
    assert encoded["unitMode"] == "false"
    assert encoded["originTopic"] == "ot"


def test_pull_message_header_timeout_in_millis():
    header = PullMessageRequestHeader(
        consumer_group="cg",
        topic="t",
        queue_id=1,
        queue_offset=500,
        max_msg_nums=32,
        suspend_timeout=timedelta(seconds=20),
        sub_expression="*",
        expression_type="TAG",
    )
    encoded = header.encode()
    assert encoded["suspendTimeoutMillis"] == "20000"
    assert encoded["maxMsgNums"] == "32"
    assert encoded["subscription"] == "*"
    assert encoded["queueOffset"] == "500"
    assert encoded["expressionType"] == "TAG"


def test_pull_message_header_truncates_sub_millisecond():
    header = PullMessageRequestHeader(suspend_timeout=timedelta(microseconds=1500))
    assert header.encode()["suspendTimeoutMillis"] == "1"


@pytest.mark.parametrize(
    "header, expected",
    [
        (GetConsumerListRequestHeader("cg"), {"consumerGroup": "cg"}),
        (GetMaxOffsetRequestHeader("t", 5), {"topic": "t", "queueId": "5"}),
        (
            QueryConsumerOffsetRequestHeader("cg", "t", 2),
            {"consumerGroup": "cg", "topic": "t", "queueId": "2"},
        ),
        (
            SearchOffsetRequestHeader("t", 1, 1574791579242),
            {"topic": "t", "queueId": "1", "timestamp": "1574791579242"},
        ),
        (
            UpdateConsumerOffsetRequestHeader("cg", "t", 1, 77),
            {"consumerGroup": "cg", "topic": "t", "queueId": "1", "commitOffset": "77"},
        ),
        (GetRouteInfoRequestHeader("t"), {"topic": "t"}),
        (ViewMessageRequestHeader(42), {"offset": "42"}),
        (TopicListRequestHeader("t"), {"topic": "t"}),
        (DeleteTopicRequestHeader("t"), {"topic": "t"}),
        (GetConsumeStatsRequestHeader("cg", "t"), {"consumerGroup": "cg", "topic": "t"}),
        (QueryTopicConsumeByWhoRequestHeader("t"), {"topic": "t"}),
    ],
)
def test_simple_headers_encode(header, expected):
    assert header.encode() == expected


def test_query_message_header_encode():
    header = QueryMessageRequestHeader("t", "k", 32, 10, 20)
    assert header.encode() == {
        "topic": "t",
        "key": "k",
        "maxNum": "32",
        "beginTimestamp": "10",
        "endTimestamp": "20",
    }


def test_create_topic_header_encode():
    header = CreateTopicRequestHeader(
        topic="t",
        default_topic="TBW102",
        read_queue_nums=4,
        write_queue_nums=4,
        perm=6,
        topic_filter_type="SINGLE_TAG",
        order=True,
    )
    encoded = header.encode()
    assert encoded["perm"] == "6"
    assert encoded["order"] == "true"
    assert encoded["readQueueNums"] == "4"
    assert encoded["topicFilterType"] == "SINGLE_TAG"


def test_consumer_running_info_round_trip():
    header = GetConsumerRunningInfoHeader("cg", "127.0.0.1@1", True)
    encoded = header.encode()
    assert encoded["jstackEnable"] == "true"
    assert GetConsumerRunningInfoHeader.decode(encoded) == header


@pytest.mark.parametrize(
    "word, expected",
    [("1", True), ("T", True), ("False", False), ("yes", False)],
)
def test_consumer_running_info_decode_bool(word, expected):
    header = GetConsumerRunningInfoHeader.decode({"jstackEnable": word})
    assert header.jstack_enable is expected


def test_reset_offset_round_trip_drops_force():
    header = ResetOffsetHeader("t", "g", 1574791577504, is_force=True)
    encoded = header.encode()
    assert "isForce" not in encoded
    decoded = ResetOffsetHeader.decode(encoded)
    assert decoded.topic == "t"
    assert decoded.group == "g"
    assert decoded.timestamp == 1574791577504
    assert decoded.is_force is False


def test_consume_message_directly_round_trip():
    header = ConsumeMessageDirectlyHeader("cg", "client", "msg", "broker-a")
    assert ConsumeMessageDirectlyHeader.decode(header.encode()) == header
    assert ConsumeMessageDirectlyHeader.decode({}) == ConsumeMessageDirectlyHeader()


def test_reply_message_round_trip_without_unit_mode():
    header = ReplyMessageRequestHeader(
        producer_group="pg",
        topic="c_REPLY_TOPIC",
        default_topic="TBW102",
        default_topic_queue_nums=4,
        queue_id=1,
        sys_flag=1,
        born_timestamp=1574791579221,
        flag=7,
        properties="a\x01b\x02",
        reconsume_times=2,
        unit_mode=True,
        born_host="127.0.0.1:1000",
        store_host="127.0.0.1:10911",
        store_timestamp=1574791579242,
    )
    encoded = header.encode()
    assert "unitMode" not in encoded
    decoded = ReplyMessageRequestHeader.decode(encoded)
    assert decoded.unit_mode is False
    decoded.unit_mode = True
    assert decoded == header


def test_reply_message_decode_clamps_and_rejects():
    header = ReplyMessageRequestHeader.decode(
        {"flag": "99999999999", "reconsumeTimes": "x1", "queueId": " 3"}
    )
    assert header.flag == 2147483647
    assert header.reconsume_times == 0
    assert header.queue_id == 0