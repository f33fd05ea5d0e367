import os

from ballotbox import create_app
from ballotbox.config import Config

os.makedirs(Config.DATA_DIR, exist_ok=True)

app = create_app()

if __name__ == "__main__":
    app.logger.info("Voting page on http://localhost:%d", app.config["PORT"])
    app.logger.info("Admin view on /admin?key=...")
    app.run(host="0.0.0.0", port=app.config["PORT"])
