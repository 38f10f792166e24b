"""
CORS Configuration
"""
import os

CORS_CONFIG = {
    "origins": os.getenv("CORS_ORIGINS", "*"),
    "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    "allow_headers": [
        "Content-Type",
        "Authorization",
        "X-Requested-With",
        "Accept",
        "Origin",
    ],
    "max_age": 86400,  # 24 hours
}


def init_cors(app):
    """Initialize CORS for the /api routes"""
    from flask_cors import CORS

    CORS(app,
         resources={r"/api/*": {"origins": CORS_CONFIG["origins"]}},
         methods=CORS_CONFIG["methods"],
         allow_headers=CORS_CONFIG["allow_headers"],
         max_age=CORS_CONFIG["max_age"])

    app.logger.info("CORS enabled for origins: %s", CORS_CONFIG["origins"])
