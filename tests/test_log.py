import pytest
import structlog

from loader.log import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.mark.parametrize("renderer", ["json", "console"])
def test_configure_logging(renderer):
    configure_logging(level="debug", renderer=renderer)

    assert structlog.is_configured()
    processors = structlog.get_config()["processors"]
    assert structlog.stdlib.filter_by_level in processors
    expected = structlog.processors.JSONRenderer if renderer == "json" else structlog.dev.ConsoleRenderer
    assert isinstance(processors[-1], expected)
