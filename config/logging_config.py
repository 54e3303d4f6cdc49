import logging
import sys


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    루트 로거에 stdout 핸들러를 한 번만 붙인다.
    - 여러 번 호출돼도 핸들러가 중복되지 않음
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    if not any(getattr(h, "_grade_console", False) for h in logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        console_handler._grade_console = True
        logger.addHandler(console_handler)

    # HTTP 라이브러리 디버그 로그 비활성화
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logger
