#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
簡化啟動器：統一入口指向 app:app
"""

import sys

from config import FASTAPI_HOST, FASTAPI_PORT, FASTAPI_RELOAD


def main():
    import uvicorn

    uvicorn.run(
        "app:app",
        host=FASTAPI_HOST,
        port=FASTAPI_PORT,
        reload=FASTAPI_RELOAD,
        log_level="info",
    )


if __name__ == "__main__":
    sys.exit(main())
