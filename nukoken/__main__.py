import uvicorn

from nukoken.config import Config


if __name__ == "__main__":
    cfg = Config()
    uvicorn.run("nukoken.app:app", host="0.0.0.0", port=8000, reload=cfg.debug)
