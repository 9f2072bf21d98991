from loguru import logger

from src.gpg_bridge.notifier import LOG_MESSAGE, Notifier, TOUCH_REQUIRED


def test_emit_reaches_all_listeners_even_if_one_fails():
    notifier = Notifier()
    received = []

    def broken(event, payload):
        raise RuntimeError("ui gone")

    notifier.subscribe(broken)
    notifier.subscribe(lambda event, payload: received.append((event, payload)))

    notifier.emit(TOUCH_REQUIRED, {"message": "touch"})

    assert received == [(TOUCH_REQUIRED, {"message": "touch"})]


def test_unsubscribe():
    notifier = Notifier()
    received = []
    unsubscribe = notifier.subscribe(lambda event, payload: received.append(event))

    unsubscribe()
    notifier.emit(TOUCH_REQUIRED)

    assert received == []


def test_log_lines_are_forwarded():
    notifier = Notifier()
    lines = []
    notifier.subscribe(lambda event, payload: lines.append((event, payload["line"])))

    sink_id = logger.add(notifier.log_sink, format="{level}: {message}")
    try:
        logger.info("bridge ready")
    finally:
        logger.remove(sink_id)

    assert (LOG_MESSAGE, "INFO: bridge ready") in lines
