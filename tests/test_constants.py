import pytest

from rmqclient.constants import (
    REPLY_TOPIC_POSTFIX,
    RETRY_GROUP_TOPIC_PREFIX,
    get_reply_topic,
    get_retry_topic,
)


def test_reply_topic_for_cluster():
    assert get_reply_topic("DefaultCluster") == "DefaultCluster_REPLY_TOPIC"


def test_reply_topic_ends_with_postfix():
    topic = get_reply_topic("c1")
    assert topic.startswith("c1")
    assert topic.endswith(REPLY_TOPIC_POSTFIX)


def test_retry_topic_adds_prefix():
    assert get_retry_topic("GID_GO_TEST") == "%RETRY%GID_GO_TEST"


def test_retry_topic_keeps_existing_prefix():
    assert get_retry_topic("%RETRY%mq-client-go-test%GID_GO_TEST") == (
        "%RETRY%mq-client-go-test%GID_GO_TEST"
    )


@pytest.mark.parametrize("group", ["", "a", "consumer-group", "%RETRY%x"])
def test_retry_topic_is_idempotent(group):
    once = get_retry_topic(group)
    assert once.startswith(RETRY_GROUP_TOPIC_PREFIX)
    assert get_retry_topic(once) == once