"""Classification path parsing.

PolarsRecordStore pushes the same split down into its queries (``PathTopic``
and ``PathSubtopic``); the two are kept in agreement by the store tests.
"""

from typing import NamedTuple

from ..constants import PATH_DELIMITER, SUBTOPIC_START, TOPIC_INDEX


class ParsedPath(NamedTuple):
    """Topic and subtopic extracted from a classification path."""

    topic: str
    subtopic: str


def parse_path(path: str) -> ParsedPath:
    """Split a slash-delimited classification path into topic and subtopic.

    Empty components are kept, so ``"A//B"`` has three components. The first
    component is the root and is skipped whenever there is a second one:

    - three or more components: topic is component 1, subtopic is components
      2 onward joined with ``/``
    - two components: topic is component 1, no subtopic
    - one component: topic is the whole path, no subtopic

    Whitespace is trimmed from the topic and from the joined subtopic, not
    from each subtopic component.

    Args:
        path: Classification path, e.g. ``"Root/Billing/Refund/Card"``.

    Returns:
        ParsedPath: The topic and (possibly empty) subtopic.
    """
    components = path.split(PATH_DELIMITER)

    if len(components) > TOPIC_INDEX:
        topic = components[TOPIC_INDEX]
    else:
        topic = components[0]

    subtopic = PATH_DELIMITER.join(components[SUBTOPIC_START:])
    return ParsedPath(topic=topic.strip(), subtopic=subtopic.strip())
