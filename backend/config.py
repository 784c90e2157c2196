import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma-separated list of allowed origins, '*' allows any
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',') if o.strip()]
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Minimum connected non-host players to start a game
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '4'))
    # Live room cap. 0 disables.
    MAX_SESSIONS = int(os.environ.get('MAX_SESSIONS', '0'))
    # Idle room eviction (seconds). 0 disables.
    SESSION_IDLE_TIMEOUT_SEC = int(os.environ.get('SESSION_IDLE_TIMEOUT_SEC', str(6 * 60 * 60)))
    SESSION_SWEEP_INTERVAL_SEC = int(os.environ.get('SESSION_SWEEP_INTERVAL_SEC', '60'))
    # Optional: fixed seed for role shuffling
    ROLE_SEED = os.environ.get('ROLE_SEED')
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
