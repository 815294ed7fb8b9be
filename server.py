import os
import uvicorn

from app.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    port = int(os.environ.get("PORT", 8000))
    log_level = settings.log_level.lower()

    if os.environ.get("ENV", "dev") == "dev":
        uvicorn.run("app.main:app", host="127.0.0.1", port=port, reload=True, log_level=log_level)
    else:
        uvicorn.run("app.main:app", host="0.0.0.0", port=port, log_level=log_level, proxy_headers=True)
