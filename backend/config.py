import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Chat history only; room state lives in memory
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///quizroom.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Phase timers (seconds)
    PREPARE_SECONDS = int(os.environ.get('PREPARE_SECONDS', '5'))
    ANSWER_SECONDS = int(os.environ.get('ANSWER_SECONDS', '30'))
    # Scoring
    MAX_POINTS = int(os.environ.get('MAX_POINTS', '1000'))
    STREAK_BONUS = int(os.environ.get('STREAK_BONUS', '20'))
    # Give up generating a room code after this many collisions
    ROOM_CODE_ATTEMPTS = int(os.environ.get('ROOM_CODE_ATTEMPTS', '1000'))
    # Chat
    CHAT_HISTORY_LIMIT = int(os.environ.get('CHAT_HISTORY_LIMIT', '50'))
    CHAT_MAX_LENGTH = int(os.environ.get('CHAT_MAX_LENGTH', '500'))
    # Identity tokens
    AUTH_TOKEN_MAX_AGE_SEC = int(os.environ.get('AUTH_TOKEN_MAX_AGE_SEC', '86400'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
    # Optional: level for the quizroom logger (e.g. INFO). Empty keeps Flask's default.
    LOG_LEVEL = os.environ.get('LOG_LEVEL', '')
