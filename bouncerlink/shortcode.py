"""Short code generation utilities."""

import secrets
import string
import uuid
from typing import Optional


class ShortCodeGenerator:
    """Generate short codes for links."""

    # Letters and digits minus characters that are easy to misread
    ALPHABET = "".join(
        c for c in string.ascii_letters + string.digits if c not in "0Oo1lI"
    )

    def __init__(self, default_length: int = 8):
        """Initialize short code generator.

        Args:
            default_length: Default length for generated codes
        """
        self.default_length = default_length

    def generate_random(self, length: Optional[int] = None) -> str:
        """Generate a random short code.

        Args:
            length: Length of the code (uses default if not specified)

        Returns:
            Random short code
        """
        length = length or self.default_length
        return "".join(secrets.choice(self.ALPHABET) for _ in range(length))

    def generate_from_uuid(self, length: Optional[int] = None) -> str:
        """Generate short code from a fresh UUID.

        Args:
            length: Length of the code (uses default if not specified)

        Returns:
            Short code based on UUID
        """
        length = length or self.default_length
        code = self._int_to_code(uuid.uuid4().int)
        return code[:length]

    def _int_to_code(self, num: int) -> str:
        """Encode a non-negative integer with the generator alphabet."""
        if num == 0:
            return self.ALPHABET[0]

        result = []
        base = len(self.ALPHABET)

        while num > 0:
            num, remainder = divmod(num, base)
            result.append(self.ALPHABET[remainder])

        return "".join(reversed(result))
