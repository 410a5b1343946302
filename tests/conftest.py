"""Shared fixtures for the rtlgen test suite."""

import pytest

from rtlgen.core.config import Settings
from rtlgen.models import ComponentAnalysis, EventHandler, PropDefinition

GREETING_SOURCE = (
    "export default function Greeting({name}: {name: string}) "
    '{ return <button onClick={()=>{}} data-testid="btn">{name}</button>; }'
)

VALID_TEST = """import { render, screen } from '@testing-library/react';
import userEvent from '@testing-library/user-event';
import Greeting from './Greeting';

describe('Greeting', () => {
  it('renders the name', () => {
    render(<Greeting name="Ada" />);
    expect(screen.getByTestId('btn')).toHaveTextContent('Ada');
  });
});
"""


@pytest.fixture
def settings():
    """Settings with no backoff delay and a short heartbeat."""
    return Settings(
        retry_attempts=2,
        retry_base_delay=0,
        failure_threshold=3,
        cooldown=30.0,
        heartbeat_interval=60.0,
    )


@pytest.fixture
def greeting_analysis():
    return ComponentAnalysis(
        name="Greeting",
        type="functional",
        props=[PropDefinition(name="name", type="string", required=True)],
        event_handlers=[EventHandler(name="onClick", handler="() => {}", element="button")],
        data_test_ids=["btn"],
        complexity=3,
        testing_recommendations=[
            "Use fireEvent or userEvent to trigger component callbacks.",
        ],
    )


@pytest.fixture
def greeting_source():
    return GREETING_SOURCE


@pytest.fixture
def valid_test():
    return VALID_TEST
