"""Short code generation.

Codes are derived from the MD5 digest of the normalized URL, encoded in
base-62 and cut to a fixed length. When a candidate is already taken the
input is salted with ``_<attempt>`` and hashed again, so for a given URL and
store state the sequence of candidates is always the same.
"""

import hashlib
import logging
import re
import string
from typing import Awaitable, Callable, Iterator, Optional, Tuple

from hashurl.core.config import ShortenerConfig
from hashurl.services.exceptions import GenerationExhaustedError, InvalidInputError

logger = logging.getLogger(__name__)

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase
CODE_PATTERN = re.compile(r"^[0-9A-Za-z]{1,10}$")

# Async predicate answering "is this code already issued?"
IsTaken = Callable[[str], Awaitable[bool]]


def normalize_url(url: str) -> str:
    """Trim the URL and default its scheme to https."""
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


def encode_base62(data: bytes, length: int) -> str:
    """
    Encode bytes as a base-62 string of at least ``length`` characters.

    The bytes are read as an unsigned big-endian integer; short results are
    left-padded with the alphabet's zero symbol.
    """
    number = int.from_bytes(data, "big")
    digits = []
    while number > 0:
        number, remainder = divmod(number, 62)
        digits.append(BASE62_ALPHABET[remainder])
    encoded = "".join(reversed(digits))
    return encoded.rjust(length, BASE62_ALPHABET[0])


def candidate(normalized_url: str, attempt: int, length: int = 6) -> str:
    """
    Compute the code tried at ``attempt`` for an already-normalized URL.

    Attempt 0 hashes the URL itself, attempt n hashes ``url + "_n"``. The
    most significant ``length`` characters of the encoding are kept.
    """
    hash_input = normalized_url if attempt == 0 else f"{normalized_url}_{attempt}"
    digest = hashlib.md5(hash_input.encode("utf-8")).digest()
    return encode_base62(digest, length)[:length]


def is_valid_code(code: Optional[str]) -> bool:
    """Check that a string could be a code issued by this service."""
    return bool(code) and CODE_PATTERN.match(code) is not None


class CodeGenerator:
    """
    Deterministic, collision-resolving short code generator.

    The generator holds no state between calls; occupancy is answered by the
    ``is_taken`` predicate supplied per call, typically the store's
    ``exists_by_code`` bound to a session.
    """

    def __init__(self, config: ShortenerConfig):
        self.code_length = config.code_length
        self.max_attempts = config.max_collision_attempts

    def candidates(self, long_url: str) -> Iterator[Tuple[int, str]]:
        """Yield ``(attempt, code)`` pairs in the order they are tried."""
        normalized = normalize_url(self._require_url(long_url))
        for attempt in range(self.max_attempts):
            yield attempt, candidate(normalized, attempt, self.code_length)

    async def generate(self, long_url: str, is_taken: IsTaken) -> str:
        """
        Generate a code for ``long_url`` that ``is_taken`` reports as free.

        Args:
            long_url: URL to shorten; a missing scheme is treated as https
            is_taken: Async occupancy check for a candidate code

        Returns:
            str: A free code of exactly ``code_length`` characters

        Raises:
            InvalidInputError: If the URL is None or blank
            GenerationExhaustedError: If every candidate hit an occupied code
        """
        for attempt, code in self.candidates(long_url):
            if not await is_taken(code):
                if attempt:
                    logger.info(f"Generated code '{code}' after {attempt} collision(s)")
                else:
                    logger.debug(f"Generated code '{code}'")
                return code
            logger.warning(
                f"Collision detected for code '{code}', attempt {attempt + 1}/{self.max_attempts}"
            )

        raise GenerationExhaustedError(
            f"Unable to generate a unique short code after {self.max_attempts} attempts"
        )

    @staticmethod
    def _require_url(long_url: Optional[str]) -> str:
        if long_url is None or not str(long_url).strip():
            raise InvalidInputError("URL cannot be null or empty")
        return str(long_url)
