import logging

from hydequeue.config import settings
from hydequeue.web_api.web_app import app, get_taste_store


def warmup() -> None:
    """
    Open the profile store before serving requests.
    """
    print("[startup] Opening taste profile store...", flush=True)
    store = get_taste_store()
    print(f"[startup] Store ready at {store.db_path}", flush=True)
    print(f"[startup] hydequeue ready at http://127.0.0.1:{settings.API_PORT}", flush=True)


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO),
        format="[%(levelname)s] %(asctime)s %(message)s",
    )
    logging.getLogger("werkzeug").setLevel(logging.ERROR)
    warmup()
    app.run(debug=False, use_reloader=False, port=settings.API_PORT, host=settings.API_HOST)
