import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.exceptions import ScoringRejected
from app.main import domain_exception_handler, unhandled_exception_handler
from app.scoring.errors import InvalidEvent, UndoUnavailable


def _app() -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.add_exception_handler(ScoringRejected, domain_exception_handler)

    @app.get("/boom")
    def boom():
        raise ValueError("boom")

    @app.get("/rejected")
    def rejected():
        raise ScoringRejected(InvalidEvent("match is already completed"))

    @app.get("/conflict")
    def conflict():
        raise ScoringRejected(UndoUnavailable("no points to undo"))

    return app


def test_unhandled_exception_logs_traceback(caplog):
    client = TestClient(_app(), raise_server_exceptions=False)
    with caplog.at_level(logging.ERROR):
        response = client.get("/boom")

    assert response.status_code == 500
    assert response.json()["code"] == "internal_server_error"
    record = next((r for r in caplog.records if r.message == "Unhandled exception"), None)
    assert record is not None
    assert record.exc_info[0] is ValueError
    assert "ValueError: boom" in caplog.text


def test_scoring_rejections_become_problem_details():
    client = TestClient(_app(), raise_server_exceptions=False)

    response = client.get("/rejected")
    assert response.status_code == 422
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json() == {
        "type": "about:blank",
        "title": "Scoring event rejected",
        "detail": "match is already completed",
        "status": 422,
        "instance": "/rejected",
        "code": "invalid_event",
    }

    response = client.get("/conflict")
    assert response.status_code == 409
    assert response.json()["code"] == "undo_unavailable"
