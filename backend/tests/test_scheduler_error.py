from app.core.exceptions import AppError, ConfigurationError, SchedulerError


def test_scheduler_error_structure():
    err = SchedulerError(message="Test error", details={"foo": "bar"})
    assert err.status_code == 400
    assert err.message == "Test error"
    assert err.details == {"foo": "bar"}
    assert isinstance(err, AppError)


def test_app_error_defaults():
    err = AppError("Generic error")
    assert err.status_code == 500
    assert err.details == {}


def test_configuration_error_is_server_side():
    err = ConfigurationError("bad capacity")
    assert err.status_code == 500
    assert str(err) == "bad capacity"


def test_app_error_handler_formats_response():
    from fastapi import FastAPI
    from fastapi.testclient import TestClient

    from app.main import app_error_handler

    sandbox = FastAPI()
    sandbox.add_exception_handler(AppError, app_error_handler)

    @sandbox.get("/boom")
    def boom():
        raise SchedulerError(message="Unsupported schedule option: x", details={"allowed": ["min-blocks"]})

    response = TestClient(sandbox).get("/boom")
    assert response.status_code == 400
    assert response.json() == {"message": "Unsupported schedule option: x", "details": {"allowed": ["min-blocks"]}}
