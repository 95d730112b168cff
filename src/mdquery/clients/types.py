"""Response types returned by model clients."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TokenLogprob:
    """Log-probability of one generated token."""

    token: str
    logprob: float


@dataclass(frozen=True)
class Completion:
    """Generated text and, when requested, per-token log-probabilities."""

    text: str
    logprobs: list[TokenLogprob] = field(default_factory=list)
