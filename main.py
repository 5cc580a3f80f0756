"""Entry point for `uvicorn main:app` and `python main.py`.

The ASGI app itself lives in `app.main`.
"""

import os

from app.main import app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
