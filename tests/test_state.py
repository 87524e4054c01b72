import dataclasses

import pytest

from loader.errors import LoaderError, ParseError, StatusError, TransportError
from loader.state import Empty, Failed, FailureKind, Idle, Loading, Success, is_terminal


def test_states_are_immutable():
    state = Success(items=({'id': 1},), total=1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        state.total = 2


def test_status_tags_are_distinct():
    tags = {Idle.status, Loading.status, Success.status, Empty.status, Failed.status}
    assert tags == {'idle', 'loading', 'success', 'empty', 'failed'}


def test_terminal_states():
    assert not is_terminal(Idle())
    assert not is_terminal(Loading())
    assert is_terminal(Success(items=({'id': 1},), total=1))
    assert is_terminal(Empty())
    assert is_terminal(Failed("boom"))


def test_error_kinds():
    assert TransportError("refused").kind is FailureKind.TRANSPORT
    assert TransportError("slow", kind=FailureKind.TIMEOUT).kind is FailureKind.TIMEOUT
    assert ParseError("bad json").kind is FailureKind.PARSE

    status = StatusError(404)
    assert status.kind is FailureKind.STATUS
    assert status.status_code == 404
    assert str(status) == "HTTP error! status: 404"
    assert isinstance(status, LoaderError)
