"""
Development server: python run.py
Host, port and environment come from FLASK_HOST, FLASK_PORT and FLASK_ENV.
"""
import logging
import os

from pms import create_app

logger = logging.getLogger(__name__)

app = create_app()


def main():
    host = os.getenv('FLASK_HOST', '0.0.0.0')
    port = int(os.getenv('FLASK_PORT', '5000'))
    env = os.getenv('FLASK_ENV', 'development')

    logger.info(
        "Patient management API on %s:%s (env=%s, database=%s)",
        host, port, env, app.config['SQLALCHEMY_DATABASE_URI'].split('://')[0],
    )
    app.run(host=host, port=port, debug=env == 'development', threaded=True)


if __name__ == '__main__':
    main()
