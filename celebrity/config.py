import os


class Config:
    LOG_LEVEL = os.environ.get('CELEBRITY_LOG_LEVEL', 'INFO').upper()
    # Comma separated; "*" allows every origin (development default)
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get('CELEBRITY_CORS_ORIGINS', '*').split(',')
        if origin.strip()
    ]
    HOST = os.environ.get('CELEBRITY_HOST', '0.0.0.0')
    PORT = int(os.environ.get('CELEBRITY_PORT', '3000'))
