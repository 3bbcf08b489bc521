from __future__ import annotations

import datetime
import logging

from crypto_news_digest.core.config import ConfigError, load_credentials
from crypto_news_digest.core.constants import NOTICE_FAILURE_PREFIX
from crypto_news_digest.processing.pipeline import build_default_pipeline, build_default_sender

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def _log(message: str) -> None:
    ts = datetime.datetime.now().strftime("%H:%M:%S")
    print(f"[{ts}] {message}")


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    _log("프로그램 시작")

    # 자격 증명이 없으면 어떤 네트워크 호출도 하지 않고 종료
    try:
        credentials = load_credentials()
    except ConfigError as e:
        _log(f"❌ 설정 오류: {e}")
        return EXIT_CONFIG_ERROR

    sender = build_default_sender(credentials=credentials)
    try:
        pipeline = build_default_pipeline(logger=_log, credentials=credentials, sender=sender)
        result = pipeline.run()
    except Exception as e:
        logging.getLogger(__name__).exception("pipeline failed")
        _log(f"❌ 오류 발생: {e}")
        sender.send_notice(f"{NOTICE_FAILURE_PREFIX}\n{e}")
        return EXIT_FAILURE

    _log(f"완료! 상태: {result.status}, 발송 {result.delivered}개")
    return EXIT_OK
