import logging
import os
from nonogram import create_app

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

app = create_app(os.getenv("NONOGRAM_CONFIG", "nonogram.config.DevelopmentConfig"))

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
