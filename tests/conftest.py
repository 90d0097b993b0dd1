import pytest

from mousenudge.cursor import CursorService


class FakeControl:
    """Records every label the controller sets."""

    def __init__(self):
        self.labels = []

    @property
    def label(self):
        return self.labels[-1] if self.labels else None

    def set_label(self, text):
        self.labels.append(text)


class FakeCursor(CursorService):
    """In-memory pointer. Set get_error / move_error to make calls fail."""

    def __init__(self, position=(500, 300)):
        self.position = position
        self.calls = []
        self.get_error = None
        self.move_error = None
        self.closed = False

    def get_position(self):
        self.calls.append(('get_position',))
        if self.get_error:
            raise self.get_error
        return self.position

    def move_to(self, x, y):
        self.calls.append(('move_to', x, y))
        if self.move_error:
            raise self.move_error
        self.position = (x, y)

    def close(self):
        self.closed = True

    @property
    def moves(self):
        return [call[1:] for call in self.calls if call[0] == 'move_to']


@pytest.fixture
def control():
    return FakeControl()


@pytest.fixture
def cursor():
    return FakeCursor()
