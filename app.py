import logging
import os

from loanpro import create_app, list_routes

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()

if __name__ == "__main__":
    if os.environ.get("LIST_ROUTES"):
        for line in list_routes(app):
            print(line)
    app.run(debug=os.environ.get("FLASK_DEBUG") == "1")
