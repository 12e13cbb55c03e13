import random

# A-Z without O and I, plus 2-9: 32 symbols that survive being read aloud
ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
CODE_LENGTH = 6

_ALLOWED = frozenset(ALPHABET)


class RoomCodeGenerator:
    """Produce short room codes.

    Codes are drawn uniformly from `ALPHABET`. The generator does not know
    which codes are live; the directory retries on collision.
    """

    def __init__(self, length: int = CODE_LENGTH, rng=None):
        self.length = length
        self._rng = rng or random.SystemRandom()

    def generate(self) -> str:
        return ''.join(self._rng.choice(ALPHABET) for _ in range(self.length))

    def validate(self, code) -> bool:
        if not isinstance(code, str) or len(code) != self.length:
            return False
        return all(ch in _ALLOWED for ch in code)


def normalize_code(code):
    if not isinstance(code, str):
        return code
    return code.strip().upper()
