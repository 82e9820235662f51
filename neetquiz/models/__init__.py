"""
Database models package
"""
from neetquiz.models.question import Question
from neetquiz.models.daily_task import DailyTask
from neetquiz.models.quiz import Quiz, QuizQuestion
from neetquiz.models.quiz_attempt import QuizAttempt

__all__ = ["Question", "DailyTask", "Quiz", "QuizQuestion", "QuizAttempt"]
