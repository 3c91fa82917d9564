"""
Grounded answering over retrieved passages.

The generator only ever sees passages that cleared the retrieval threshold.
When none do, the fixed NO_ANSWER reply is returned without calling it.
"""

import logging
from typing import List, Optional, Sequence

from ..contracts.passage_contracts import SimilarityResult
from ..providers.base import TextGenerator
from .search import RetrievalEngine


logger = logging.getLogger(__name__)


NO_ANSWER = "Sorry, I don't know."

ANSWER_INSTRUCTIONS = (
    "You are a knowledge assistant. Only respond using information from the "
    f"passages below. If they do not contain the answer, respond \"{NO_ANSWER}\""
)


def build_answer_prompt(question: str, passages: Sequence[SimilarityResult]) -> str:
    """
    Render the prompt handed to the text generator.
    
    Args:
        question: The user's question
        passages: Retrieved passages, best first
        
    Returns:
        Prompt text with numbered, source-tagged passages
    """
    lines = [ANSWER_INSTRUCTIONS, "", "Passages:"]
    for i, passage in enumerate(passages, start=1):
        lines.append(f"[{i}] ({passage.source}) {passage.content}")
    lines.extend(["", f"Question: {question}", "Answer:"])
    return "\n".join(lines)


def answer_question(
    question: str,
    engine: RetrievalEngine,
    generator: TextGenerator,
    threshold: Optional[float] = None,
    top_k: Optional[int] = None,
) -> str:
    """
    Answer a question from the knowledge base.
    
    Args:
        question: The user's question
        engine: Retrieval engine over the knowledge base
        generator: Text generator used to phrase the answer
        threshold: Override for the engine's default threshold
        top_k: Override for the engine's default top_k
        
    Returns:
        The generated answer, or NO_ANSWER if nothing relevant was found
    """
    passages: List[SimilarityResult] = engine.find_relevant(
        question, threshold=threshold, top_k=top_k
    )
    
    if not passages:
        logger.info("No relevant passages found", extra={"operation": "answer"})
        return NO_ANSWER
    
    prompt = build_answer_prompt(question, passages)
    answer = generator.generate_text(prompt).strip()
    return answer or NO_ANSWER
