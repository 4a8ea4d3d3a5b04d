"""Output evaluator for grounded-answer quality checks."""
import re
from typing import List, Set
from models.chunk import ScoredChunk

CITATION_PATTERN = re.compile(r"\[Source\s+(\d+)\]", re.IGNORECASE)


class OutputEvaluator:
    """Analyzes generated answers and flags grounding issues."""

    # Refusal phrases to detect when LLM declines to answer
    REFUSAL_PHRASES = [
        "i don't have",
        "not mentioned",
        "cannot find",
        "don't know",
        "no information",
        "i cannot",
        "i can't",
        "unable to find",
        "not enough information",
        "don't contain",
        "do not contain",
        "doesn't mention"
    ]

    # Indicators that the model is providing a partial answer rather than a total refusal
    PARTIAL_ANSWER_INDICATORS = [
        "but",
        "however",
        "although",
        "does mention",
        "instead",
        "alternatively"
    ]

    def evaluate(self, response: str, sources: List[ScoredChunk]) -> List[str]:
        """
        Evaluate answer quality and return flags.

        Args:
            response: Generated LLM answer
            sources: Chunks that were offered to the model as [Source 1..N]

        Returns:
            List of flag strings (empty if no issues)
        """
        flags = []
        is_refusal = self._is_refusal(response)

        # Check 1: No-context detection
        if not sources and not is_refusal:
            flags.append("no_context")

        # Check 2: Refusal detection
        if is_refusal:
            flags.append("refusal")

        cited = self.cited_sources(response)

        # Check 3: Answers from sources must cite them
        if sources and not is_refusal and not cited:
            flags.append("missing_citations")

        # Check 4: Citations must point at a supplied source
        if any(n < 1 or n > len(sources) for n in cited):
            flags.append("invalid_citation")

        return flags

    @staticmethod
    def cited_sources(response: str) -> Set[int]:
        """Source numbers referenced as [Source N] in the response."""
        return {int(match) for match in CITATION_PATTERN.findall(response)}

    def _is_refusal(self, response: str) -> bool:
        """
        Detect when LLM explicitly refuses to answer the entirety of the question.
        Avoids flagging partial answers where the LLM provides some valid information.
        """
        response_lower = response.lower()

        has_refusal = any(
            re.search(rf'\b{re.escape(phrase)}\b', response_lower)
            for phrase in self.REFUSAL_PHRASES
        )
        if not has_refusal:
            return False

        # Partial answers usually pivot with a contrast word to give the info they DO have.
        has_contrast = any(
            re.search(rf'\b{re.escape(indicator)}\b', response_lower)
            for indicator in self.PARTIAL_ANSWER_INDICATORS
        )

        # Pure refusals are typically very short ("I'm sorry, I don't know.").
        word_count = len(response.split())
        if has_contrast and word_count > 12:
            return False

        return True
