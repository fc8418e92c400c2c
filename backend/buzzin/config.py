import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
        ).split(',') if o.strip()
    ]
    # Room codes: uppercase alphanumeric, fixed length
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '4'))
    ROOM_CODE_ATTEMPTS = int(os.environ.get('ROOM_CODE_ATTEMPTS', '50'))
    MAX_NAME_LENGTH = int(os.environ.get('MAX_NAME_LENGTH', '40'))
    # Points for a single award/penalty when the host doesn't send a delta
    SCORE_DELTA = int(os.environ.get('SCORE_DELTA', '50'))
    TEAMS = tuple(t.strip() for t in os.environ.get('TEAMS', 'tipsy,wobbly').split(',') if t.strip())
    # Idle room reclamation (seconds). 0 disables.
    IDLE_ROOM_TIMEOUT_SEC = int(os.environ.get('IDLE_ROOM_TIMEOUT_SEC', '3600'))
    REAPER_INTERVAL_SEC = int(os.environ.get('REAPER_INTERVAL_SEC', '60'))
    PORT = int(os.environ.get('PORT', '5175'))
