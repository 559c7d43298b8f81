from __future__ import annotations
from dotenv import load_dotenv
from app.presentation.http.server import create_app
from app.shared.setup_logger import LOGGER

if __name__ == "__main__":
    load_dotenv()
    app = create_app()
    s = app.container.settings
    LOGGER.get_logger().info("spark-hub backend on %s:%s (tz=%s)", s.app_host, s.app_port, s.lounge_timezone)
    app.run(host=s.app_host, port=s.app_port, debug=s.app_debug)
