"""Constants and helpers shared by test modules."""

OWNER = "0x00000000000000000000000000000000000a11ce"
ALICE = "0x1111111111111111111111111111111111111111"
BOB = "0x2222222222222222222222222222222222222222"
GENESIS_TS = 1_800_000_000


class FakeClock:
    """Settable wall clock for LocalChain block timestamps."""

    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now
