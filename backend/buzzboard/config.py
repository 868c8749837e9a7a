import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Shared secret the host types on the landing page
    HOST_PASSWORD = os.environ.get('HOST_PASSWORD') or 'jeopardy2025'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',') if o.strip()]
    # Question bank (price,CATEGORY1,CATEGORY2,... with "question;answer" cells)
    QUESTIONS_CSV = os.environ.get('QUESTIONS_CSV', 'jeopardy_questions.csv')
    # Session lifetime and sweep cadence (seconds)
    SESSION_TTL_SEC = int(os.environ.get('SESSION_TTL_SEC', str(24 * 60 * 60)))
    SESSION_SWEEP_INTERVAL_SEC = int(os.environ.get('SESSION_SWEEP_INTERVAL_SEC', str(60 * 60)))
    # AI regeneration is enabled only when a key is present
    OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY')
    OPENAI_MODEL = os.environ.get('OPENAI_MODEL', 'gpt-4o-mini')
    # Optional: release an unjudged buzz after this many seconds. 0 disables.
    ANSWER_TIMEOUT_SEC = int(os.environ.get('ANSWER_TIMEOUT_SEC', '0'))
    MAX_NAME_LENGTH = int(os.environ.get('MAX_NAME_LENGTH', '20'))
    # Wager ceiling for contestants at or below zero
    MIN_MAX_WAGER = int(os.environ.get('MIN_MAX_WAGER', '1000'))
    FINAL_JEOPARDY_CATEGORY = os.environ.get('FINAL_JEOPARDY_CATEGORY', 'TECHNOLOGY')
    FINAL_JEOPARDY_TEXT = os.environ.get(
        'FINAL_JEOPARDY_TEXT',
        'Final Jeopardy Question: This programming language was created by Brendan Eich in 1995.',
    )
