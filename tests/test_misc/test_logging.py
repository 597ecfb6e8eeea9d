import json
import logging

from loguru import logger

from app.core.logger import AUDIT_LOGGER_NAME, format_json


def _capture(emit):
    records = []
    sink_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    try:
        emit()
    finally:
        logger.remove(sink_id)
    return records


def test_stdlib_records_are_routed_with_their_logger_name():
    records = _capture(lambda: logging.getLogger(AUDIT_LOGGER_NAME).info("action=%s", "LOGIN"))

    assert records, "stdlib record never reached loguru"
    record = records[-1]
    assert record["message"] == "action=LOGIN"
    assert record["extra"]["logger_name"] == AUDIT_LOGGER_NAME


def test_json_format_flattens_context():
    def emit():
        with logger.contextualize(request_id="req-123"):
            logger.bind(page_id=7, tags=["a"]).info("page saved")

    record = _capture(emit)[-1]
    assert format_json(record) == "{extra[serialized]}\n"

    doc = json.loads(record["extra"]["serialized"])
    assert doc["message"] == "page saved"
    assert doc["request_id"] == "req-123"
    assert doc["page_id"] == 7
    assert doc["tags"] == "['a']"
    assert doc["level"] == "INFO"
