"""
Participant resolution for ticket creation.

Turns the free-text "related users" option into Discord user ids.
"""

import logging
import re
from typing import Iterable, List, Optional

from errors.exceptions import ParseError

logger = logging.getLogger(__name__)

USER_MENTION_PATTERN = re.compile(r"^<@!?(\d{17,19})>$")

MAX_SNOWFLAKE = 2 ** 64 - 1


class ParticipantResolver:
    """
    Parses whitespace-delimited user mentions (``<@id>`` or ``<@!id>``).

    Tokens that are not mentions are ignored. The result keeps first-seen
    order and holds each id once.
    """

    def __init__(self, pattern: re.Pattern = USER_MENTION_PATTERN):
        self.pattern = pattern

    def resolve(self, text: Optional[str], exclude: Optional[Iterable[int]] = None) -> List[int]:
        """
        Resolve mention text into user ids.

        Args:
            text: Raw option text, may be None or empty
            exclude: Ids to leave out of the result (e.g. the ticket author)

        Returns:
            List[int]: Deduplicated user ids in order of appearance

        Raises:
            ParseError: If a mention-shaped token does not fit in 64 bits
        """
        if not text:
            return []

        excluded = set(exclude or ())
        seen = set()
        resolved: List[int] = []

        for token in text.strip().strip('"').split():
            match = self.pattern.match(token)
            if not match:
                logger.debug(f"Ignoring non-mention token {token!r}")
                continue

            user_id = self._decode(match.group(1), token)
            if user_id in excluded or user_id in seen:
                continue

            seen.add(user_id)
            resolved.append(user_id)

        return resolved

    @staticmethod
    def _decode(digits: str, token: str) -> int:
        try:
            user_id = int(digits)
        except ValueError:
            raise ParseError(f"Mention payload {digits!r} is not numeric", token=token)

        if user_id > MAX_SNOWFLAKE:
            raise ParseError(f"Mention payload {digits} exceeds 64 bits", token=token)

        return user_id
