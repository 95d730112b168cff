"""Relevance reranking with a yes/no judgment model."""

import json
import logging
import math
import re
from typing import Optional, Sequence

from mdquery.models import RerankCandidate, RerankScore
from mdquery.protocols import CompletionProvider, ResponseCache
from mdquery.utils.hashing import cache_key

logger = logging.getLogger(__name__)

DEFAULT_NEGATIVE_SCALE = 0.3

_AFFIRMATIVE = re.compile(r"^\s*yes\b", re.IGNORECASE)

PROMPT_TEMPLATE = (
    "<|im_start|>system\n"
    "Judge whether the Document meets the requirements based on the Query and the "
    'Instruct provided. Note that the answer can only be "yes" or "no".<|im_end|>\n'
    "<|im_start|>user\n"
    "<Instruct>: Given a search query, retrieve relevant passages that answer the query\n"
    "<Query>: {query}\n"
    "<Document>: {document}<|im_end|>\n"
    "<|im_start|>assistant\n"
    "<think>\n\n</think>\n\n"
)


def build_prompt(query: str, document: str) -> str:
    return PROMPT_TEMPLATE.format(query=query, document=document)


def score_judgment(
    text: str, logprob: Optional[float], negative_scale: float = DEFAULT_NEGATIVE_SCALE
) -> tuple[float, bool]:
    """Turn a yes/no answer and its log-probability into a score.

    A missing log-probability counts as full confidence.

    Returns:
        (score, relevant)
    """
    confidence = math.exp(logprob) if logprob is not None else 1.0
    confidence = min(confidence, 1.0)
    if _AFFIRMATIVE.match(text):
        return confidence, True
    return confidence * negative_scale, False


class Reranker:
    """Score candidates by asking a model whether each one answers the query.

    Verdicts are cached per (query, candidate id, model), so reranking the
    same candidates twice makes no new model calls.
    """

    def __init__(
        self,
        client: CompletionProvider,
        model: str,
        cache: ResponseCache | None = None,
        negative_scale: float = DEFAULT_NEGATIVE_SCALE,
        context_chars: int = 4000,
    ):
        self.client = client
        self.model = model
        self.cache = cache
        self.negative_scale = negative_scale
        self.context_chars = context_chars

    def rerank(self, query: str, candidates: Sequence[RerankCandidate]) -> list[RerankScore]:
        """Judge every candidate and return them highest score first.

        Raises:
            ModelUnavailableError: If the model cannot be reached for a
                candidate that is not cached.
        """
        if not candidates:
            return []

        scores = [self._judge(query, candidate) for candidate in candidates]
        # Stable sort keeps the incoming (fused) order among equal scores
        scores.sort(key=lambda item: item.score, reverse=True)
        return scores

    def _judge(self, query: str, candidate: RerankCandidate) -> RerankScore:
        key = cache_key("rerank", {"query": query, "id": candidate.id, "model": self.model})
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                data = json.loads(cached)
                logger.debug(f"Rerank cache hit for {candidate.id}")
                return RerankScore(id=candidate.id, score=data["score"], relevant=data["relevant"])

        completion = self.client.generate(
            self.model,
            build_prompt(query, candidate.text[: self.context_chars]),
            raw=True,
            logprobs=True,
            max_tokens=1,
        )
        logprob = completion.logprobs[0].logprob if completion.logprobs else None
        score, relevant = score_judgment(completion.text, logprob, self.negative_scale)

        if self.cache is not None:
            self.cache.put(key, json.dumps({"score": score, "relevant": relevant}))
        return RerankScore(id=candidate.id, score=score, relevant=relevant)
