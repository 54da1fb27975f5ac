import json
import logging
from pathlib import Path

import pytest

from ticketmark.config import CONFIGURATION, ApplicationConfiguration
from ticketmark.constants import LOGGER_NAME
from ticketmark.models import DeploymentKind


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    monkeypatch.setenv('TICKETMARK_CONFIG_FILE', str(tmp_path / 'missing-config.yaml'))
    monkeypatch.setenv('TICKETMARK_LOG_FILE', str(tmp_path / 'ticketmark.log'))
    for variable in (
        'TICKETMARK_DEPLOYMENT',
        'TICKETMARK_BASE_URL',
        'TICKETMARK_CODE_THEME',
        'TICKETMARK_LOG_LEVEL',
    ):
        monkeypatch.delenv(variable, raising=False)

    yield

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.NOTSET)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture(autouse=True)
def mock_configuration():
    config = ApplicationConfiguration(
        deployment=DeploymentKind.CLOUD,
        base_url='https://example.atlassian.net',
        code_theme='monokai',
        log_file=None,
        log_level='WARNING',
    )

    token = CONFIGURATION.set(config)

    yield config

    CONFIGURATION.reset(token)


def load_fixture(filename: str):
    fixture_path = Path(__file__).parent / 'fixtures' / filename
    with fixture_path.open() as f:
        return json.load(f)


def fixture_path(filename: str) -> Path:
    return Path(__file__).parent / 'fixtures' / filename


@pytest.fixture
def work_item_adf_description():
    return load_fixture('work_item_description.json')


@pytest.fixture
def enriched_metadata():
    return load_fixture('enriched_metadata.json')


@pytest.fixture
def work_item_wiki_description():
    return """h1. Checkout fails for guest users

Reported by [~accountid:5b10ac8d82e05b22cc7d4ef5], see [ENG-42|https://example.atlassian.net/browse/ENG-42].

*Bold Text* and _Italic Text_ and -Strikethrough- and {{Inline Code}}

h2. Steps

# Add an item to the cart
# Open the checkout
#* as a guest

{code:python}
def checkout(cart):
    return cart.total()
{code}

{warning}
Affects production
{warning}

{quote}
It worked yesterday
{quote}

----

||Browser||Result||
|Firefox|fails|
|Chrome|works|
"""


@pytest.fixture
def work_item_markdown_description():
    return """# Checkout fails for guest users

Reported by [@Ada Lovelace](https://example.atlassian.net/jira/people/5b10ac8d82e05b22cc7d4ef5), related to [https://example.atlassian.net/browse/ENG-42](https://example.atlassian.net/browse/ENG-42).

**Bold Text** and *Italic Text* and ~~Strikethrough~~ and `Inline Code`
See the [runbook](https://example.com/runbook)

## Steps

1. Add an item to the cart
2. Open the checkout
   - as a guest

```python
def checkout(cart):
    return cart.total()
```

> ⚠️ Affects production

> It worked yesterday

---

- First item
- Second item"""
