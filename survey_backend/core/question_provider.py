"""
Dependent Questions Provider - Follow-up questions keyed by survey topic

The provider is an external collaborator of the form engine. Any object
with an awaitable fetch(topic) returning a sequence of QuestionDescriptor
satisfies the contract:

    async def fetch(self, topic: str) -> List[QuestionDescriptor]

Contract:
- Order of the returned list is significant (it indexes the answers)
- Unrecognized topics return an empty list
- Latency is non-zero; callers must not block on it

MockQuestionProvider is the bundled implementation: it serves a static
catalog from JSON after a simulated delay.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List

from survey_backend.contracts import QuestionDescriptor

logger = logging.getLogger(__name__)


class MockQuestionProvider:
    """Serves follow-up questions from a JSON catalog with simulated latency"""

    def __init__(self, questions_path: str, latency_seconds: float = 1.0):
        """
        Initialize provider with question catalog.

        Args:
            questions_path: Path to follow_up_questions.json
            latency_seconds: Delay before each fetch resolves

        Raises:
            FileNotFoundError: If catalog doesn't exist
            ValueError: If catalog is malformed
        """
        catalog_file = Path(questions_path)
        if not catalog_file.exists():
            raise FileNotFoundError(f"Question catalog not found: {questions_path}")

        with open(catalog_file, 'r') as f:
            catalog = json.load(f)

        topics = catalog.get("topics")
        if not isinstance(topics, dict):
            raise ValueError("Question catalog missing 'topics' object")

        self.questions: Dict[str, List[QuestionDescriptor]] = {}
        for topic, texts in topics.items():
            if not isinstance(texts, list) or not all(isinstance(t, str) for t in texts):
                raise ValueError(f"Questions for topic '{topic}' must be a list of strings")
            self.questions[topic] = [QuestionDescriptor(text=t) for t in texts]

        self.latency_seconds = latency_seconds
        self.fetch_count = 0

        logger.info(f"Mock question provider initialized ({len(self.questions)} topics, "
                    f"latency {latency_seconds}s)")

    async def fetch(self, topic: str) -> List[QuestionDescriptor]:
        """
        Return follow-up questions for a topic.

        Args:
            topic: Survey topic value

        Returns:
            list[QuestionDescriptor]: Ordered questions, empty for unknown topics
        """
        self.fetch_count += 1
        logger.debug(f"Fetching follow-up questions for topic '{topic}'")

        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)

        return list(self.questions.get(topic, []))
