"""
Pytest configuration and shared fixtures for Plexus test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def editor():
    """Provide an empty NodeEditor."""
    from core.editor import NodeEditor
    return NodeEditor()


@pytest.fixture
def number_socket():
    from core.classic import Socket
    return Socket("number")


@pytest.fixture
def node_pair(number_socket):
    """Node A with output 'out1' and node B with input 'in1'."""
    from core.classic import Node, Input, Output

    a = Node("A")
    a.add_output("out1", Output(number_socket))
    b = Node("B")
    b.add_input("in1", Input(number_socket))
    return a, b


@pytest.fixture
def recorder():
    """EventRecorder with no file log."""
    from infrastructure.logger import EventRecorder
    return EventRecorder(buffer_size=100)


@pytest.fixture
def event_log():
    """
    A pipe that appends every event it sees to a list.

    Returns (pipe, events).
    """
    events = []

    def pipe(event):
        events.append(event)
        return event

    return pipe, events


@pytest.fixture
def make_veto():
    """Factory for a pipe that vetoes the given event types and passes the rest through."""
    from core.events import event_type
    from core.scope import STOP

    def factory(*types):
        wanted = set(types)

        def veto(event):
            if event_type(event) in wanted:
                return STOP
            return event

        return veto

    return factory
