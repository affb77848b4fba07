from __future__ import annotations

import os

import uvicorn


def main() -> None:
    host = os.getenv("GROUPCHAT_HOST", "0.0.0.0")
    port = int(os.getenv("GROUPCHAT_PORT", "3000"))
    reload_mode = os.getenv("GROUPCHAT_RELOAD", "0") == "1"
    uvicorn.run("groupchat.web:create_app", factory=True, host=host, port=port, reload=reload_mode)


if __name__ == "__main__":
    main()
