"""Diagnostic quizzes: AI generation of draft quizzes.

Usage:
    from modules.quizzes.generator import generate_quiz

    quiz = await generate_quiz(session, "Maturidade da gestão de obras", user_id)
    quiz.status  # "draft"
"""
