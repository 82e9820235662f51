"""
Quiz synthesis from a context block

The generative engine's output is untrusted free-form text. decode_quiz() is
the single place it is parsed; everything downstream works on QuizDraft.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from neetquiz.config import settings
from neetquiz.errors import InvalidQuestion
from neetquiz.schemas.quiz import DIFFICULTIES, SUBJECTS, OptionDraft, QuestionDraft, QuizDraft
from neetquiz.services.gemini_service import GeminiService, gemini_service
from neetquiz.services.quiz_store import validate_question

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Generated Quiz"
DEFAULT_DESCRIPTION = "Quiz generated from images"
DEFAULT_TOPIC = "General"
DEFAULT_SUBJECT = "biology"
DEFAULT_DIFFICULTY = "medium"
DEFAULT_QUESTION_TEXT = "Question text missing"
DEFAULT_EXPLANATION = "Explanation not available"

FALLBACK_DAILY_TITLES = {
    "physics": "Laws of Motion",
    "chemistry": "Chemical Bonding",
    "biology": "Human Digestive System",
}


def strip_json_wrapping(raw_text: str) -> Optional[str]:
    """
    Remove markdown fences and any prose around the outermost JSON object

    Returns None when the text contains no object at all.
    """
    cleaned = raw_text.replace("```json", "").replace("```", "").strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return None
    return cleaned[start:end + 1]


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _choice(value: Any, allowed: Sequence[str], default: str) -> str:
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return default


def _decode_option(raw: Any) -> OptionDraft:
    if isinstance(raw, str):
        return OptionDraft(text=raw)
    if not isinstance(raw, dict):
        return OptionDraft(text="")

    explanation = raw.get("explanation")
    return OptionDraft(
        text=_text(raw.get("text"), ""),
        is_correct=raw.get("isCorrect", raw.get("is_correct")) is True,
        explanation=explanation if isinstance(explanation, str) and explanation.strip() else None,
    )


def _decode_question(raw: Any, subject: str, difficulty: str) -> QuestionDraft:
    raw = raw if isinstance(raw, dict) else {}
    options = raw.get("options")

    return QuestionDraft(
        question_text=_text(raw.get("questionText", raw.get("question")), DEFAULT_QUESTION_TEXT),
        options=[_decode_option(opt) for opt in options] if isinstance(options, list) else [],
        explanation=_text(raw.get("explanation"), DEFAULT_EXPLANATION),
        subject=_choice(raw.get("subject"), SUBJECTS, subject),
        difficulty=_choice(raw.get("difficulty"), DIFFICULTIES, difficulty),
        is_previous_year=False,
    )


def decode_quiz(raw_text: Optional[str]) -> Optional[QuizDraft]:
    """
    Decode engine output into a QuizDraft, filling gaps with defaults

    Returns None when nothing usable came back: no JSON object, invalid
    JSON, or no non-empty questions list.
    """
    if not raw_text or not raw_text.strip():
        return None

    candidate = strip_json_wrapping(raw_text)
    if candidate is None:
        logger.error(f"No JSON object in engine response: {raw_text[:200]}")
        return None

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse quiz JSON: {str(e)}")
        logger.error(f"Response text: {raw_text[:500]}")
        return None

    if not isinstance(data, dict):
        return None

    questions = data.get("questions")
    if not isinstance(questions, list) or not questions:
        logger.error("Engine response has no questions")
        return None

    subject = _choice(data.get("subject"), SUBJECTS, DEFAULT_SUBJECT)
    difficulty = _choice(data.get("difficulty"), DIFFICULTIES, DEFAULT_DIFFICULTY)

    if len(questions) != settings.QUESTIONS_PER_QUIZ:
        logger.warning(f"Expected {settings.QUESTIONS_PER_QUIZ} questions, got {len(questions)}")

    return QuizDraft(
        title=_text(data.get("quizTitle"), DEFAULT_TITLE),
        description=_text(data.get("quizDescription"), DEFAULT_DESCRIPTION),
        topic=_text(data.get("topic"), DEFAULT_TOPIC),
        subject=subject,
        difficulty=difficulty,
        questions=[_decode_question(q, subject, difficulty) for q in questions],
    )


def fallback_quiz() -> QuizDraft:
    """Fixed, structurally valid quiz used when the engine gives nothing usable"""
    questions = [
        QuestionDraft(
            question_text="Sample question",
            options=[
                OptionDraft(text=f"Option {i}", is_correct=(i == 1))
                for i in range(1, 5)
            ],
            explanation="This is a sample explanation for the correct answer",
            subject=DEFAULT_SUBJECT,
            difficulty=DEFAULT_DIFFICULTY,
        )
        for _ in range(settings.QUESTIONS_PER_QUIZ)
    ]
    return QuizDraft(
        title=DEFAULT_TITLE,
        description=DEFAULT_DESCRIPTION,
        topic=DEFAULT_TOPIC,
        subject=DEFAULT_SUBJECT,
        difficulty=DEFAULT_DIFFICULTY,
        questions=questions,
        is_fallback=True,
    )


class QuizSynthesizer:
    """Turns a context block into a QuizDraft that is always structurally complete"""

    def __init__(self, engine: Optional[GeminiService] = None):
        self.engine = engine or gemini_service

    def build_prompt(self, context_text: str, avoid_questions: Optional[List[str]] = None) -> str:
        """Create structured prompt for quiz generation"""
        count = settings.QUESTIONS_PER_QUIZ
        avoid_block = ""
        if avoid_questions:
            listed = "\n".join(f"  - {q}" for q in avoid_questions)
            avoid_block = f"""
  DO NOT repeat or paraphrase any of these existing questions:
{listed}
"""

        return f"""
  You are an expert NEET educator. From the following content, generate a complete quiz with:

  REQUIRED FIELDS:
  - quizTitle (string)
  - quizDescription (string)
  - topic (string)
  - subject (must be one of: physics, chemistry, biology)
  - difficulty (must be one of: easy, medium, hard)
  - questions (array of exactly {count} questions with):
    - questionText (string)
    - options (array of 4 options, each {{"text": string, "isCorrect": boolean}}, exactly one correct)
    - explanation (string explaining why the correct answer is right)
    - subject (same as quiz subject)
    - difficulty (same as quiz difficulty)
    - isPreviousYear (false)

  IMPORTANT:
  - All fields are required
  - Return ONLY valid JSON (no markdown, no backticks)
  - Ensure all question objects are complete
  - Include detailed explanations for each question
{avoid_block}
  Content to analyze:
  {context_text}
  """

    def synthesize(self, context_text: str, avoid_questions: Optional[List[str]] = None) -> QuizDraft:
        """
        Generate a quiz draft from a context block

        Never raises for engine problems: partial output gets defaults,
        unusable or structurally invalid output gets the fallback quiz.
        """
        prompt = self.build_prompt(context_text, avoid_questions)

        try:
            raw_text = self.engine.generate(prompt)
        except Exception as e:
            logger.error(f"Failed to generate quiz: {str(e)}")
            return fallback_quiz()

        draft = decode_quiz(raw_text)
        if draft is None:
            logger.warning("Engine response unusable, returning fallback quiz")
            return fallback_quiz()

        try:
            for position, question in enumerate(draft.questions, start=1):
                validate_question(question, position)
        except InvalidQuestion as e:
            logger.warning(f"Engine quiz rejected: {e.message}; returning fallback quiz")
            return fallback_quiz()

        logger.info(f"Synthesized quiz '{draft.title}' with {len(draft.questions)} questions")
        return draft

    def generate_daily_context(self, subject: str) -> Tuple[str, str]:
        """
        Ask the engine for a daily-challenge topic and study text

        Returns:
            Tuple of (title, context)
        """
        prompt = f"""
      You are an expert NEET educator. Generate a comprehensive NEET {subject} context for a daily challenge.

      REQUIREMENTS:
      - Return ONLY valid JSON (no markdown, no backticks)
      - JSON format: {{ "title": "Specific Topic Title", "context": "Full educational content..." }}
      - Title must be a specific topic name (e.g., "Thermodynamics", "Chemical Bonding")
      - Context should be 300-500 words of detailed educational content
      - Focus on important NEET topics for {subject}
      - Content should be suitable for generating {settings.QUESTIONS_PER_QUIZ} multiple choice questions
    """

        try:
            candidate = strip_json_wrapping(self.engine.generate(prompt))
            if candidate is None:
                raise ValueError("No JSON object in response")

            data = json.loads(candidate)
            title = data.get("title") if isinstance(data, dict) else None
            context = data.get("context") if isinstance(data, dict) else None
            if not isinstance(title, str) or not isinstance(context, str) or not title.strip() or not context.strip():
                raise ValueError("AI response missing title or context fields")

            return title.strip(), context.strip()

        except Exception as e:
            logger.error(f"Error generating daily challenge context: {str(e)}")
            return (
                FALLBACK_DAILY_TITLES.get(subject, f"{subject} Daily Challenge"),
                f"This {subject} daily challenge focuses on important NEET concepts. "
                f"Study this material thoroughly as it covers key topics that are "
                f"frequently tested in the examination.",
            )


# Global instance
quiz_synthesizer = QuizSynthesizer()
