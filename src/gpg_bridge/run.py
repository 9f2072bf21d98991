#!/usr/bin/env python
import sys
import time
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from loguru import logger


def main() -> None:
    # 先加载 .env（可能包含 CONFIG_FILE），再读取配置
    load_dotenv(Path.cwd() / ".env")

    from src.gpg_bridge.certs.core import ensure_certificates
    from src.gpg_bridge.config import config
    from src.gpg_bridge.errors import ConfigurationError

    logger.remove()
    logger.add(sys.stderr, level=config.log_level.upper())
    logger.info("GPG Bridge, start running!")

    try:
        bundle = ensure_certificates(config.cert_dir)
    except ConfigurationError as e:
        logger.error(f"证书配置错误: {e}")
        # 留出时间查看日志后再退出
        time.sleep(config.fatal_exit_delay)
        sys.exit(1)

    uvicorn.run(
        "src.gpg_bridge.main:app",
        host=config.host,
        port=config.port,
        ssl_keyfile=bundle.key_path,
        ssl_certfile=bundle.cert_path,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
