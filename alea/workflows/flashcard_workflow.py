from datetime import datetime, timezone
from typing import Optional

from ..courses import flashcards_path, module_path
from ..inference import decode_flashcards
from ..prompts import FLASHCARD_GENERATOR_PROMPT
from ..schemas import FLASHCARD_GENERATION, FlashcardDeck
from ..store import Increment, WriteBatch
from .base_workflow import BaseWorkflow


class FlashcardGenerationWorkflow(BaseWorkflow):
    """
    Question/answer cards for one module's lesson.

    The module's flashcardCount is set to the size of the new set and the
    course's count moves by the difference, so regenerating a set never
    double counts.
    """
    job_type = FLASHCARD_GENERATION
    system_prompt = FLASHCARD_GENERATOR_PROMPT

    def __init__(self, services, user_id: str, course_id: str, module_id: str,
                 module_title: str, lesson_material: str, claim_key: Optional[str] = None):
        super().__init__(services, user_id, claim_key=claim_key)
        self.course_id = course_id
        self.module_id = module_id
        self.module_title = module_title
        self.lesson_material = lesson_material

    @property
    def related_doc_id(self) -> str:
        return self.module_id

    @property
    def related_course_id(self) -> str:
        return self.course_id

    def start_message(self) -> str:
        return f"Generating flashcards for {self.module_title}..."

    def failure_message(self) -> str:
        return f"Failed to generate flashcards for {self.module_title}. Please try again."

    def success_message(self, deck: FlashcardDeck) -> str:
        return f"Flashcards for {self.module_title} are ready!"

    def user_prompt(self) -> str:
        return self.lesson_material

    def decode(self, text: str) -> FlashcardDeck:
        return decode_flashcards(text)

    def persist(self, txn: WriteBatch, deck: FlashcardDeck) -> str:
        path = flashcards_path(self.course_id, self.module_id)
        previous = txn.get(path)
        previous_count = len(previous.get("cards", [])) if previous else 0
        cards = [card.model_dump() for card in deck.cards]

        txn.set(path, {
            "cards": cards,
            "moduleId": self.module_id,
            "createdAt": datetime.now(timezone.utc),
        })
        txn.update(module_path(self.course_id, self.module_id), {"flashcardCount": len(cards)})
        txn.update(f"courses/{self.course_id}", {"flashcardCount": Increment(len(cards) - previous_count)})
        self.logger.info(f"Saved {len(cards)} flashcards for module {self.module_id}")
        return f"/course/{self.course_id}"
