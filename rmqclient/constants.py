"""Well-known group and topic names."""

RETRY_GROUP_TOPIC_PREFIX = "%RETRY%"
DEFAULT_CONSUMER_GROUP = "DEFAULT_CONSUMER"
CLIENT_INNER_PRODUCER_GROUP = "CLIENT_INNER_PRODUCER"
SYSTEM_TOPIC_PREFIX = "rmq_sys_"
REPLY_MESSAGE_FLAG = "reply"
REPLY_TOPIC_POSTFIX = "REPLY_TOPIC"

V4_1_0 = 0


def get_reply_topic(cluster_name: str) -> str:
    """Name of the topic that carries replies for a cluster."""
    return f"{cluster_name}_{REPLY_TOPIC_POSTFIX}"


def get_retry_topic(group: str) -> str:
    """Retry topic of a consumer group; a retry topic is returned unchanged."""
    if group.startswith(RETRY_GROUP_TOPIC_PREFIX):
        return group
    return RETRY_GROUP_TOPIC_PREFIX + group