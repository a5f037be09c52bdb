"""gitcheckout CLI: check out refs into a working directory."""

from ._helpers import main  # noqa: F401 (entry point)

# Import command modules to register Click commands with the main group.
from . import _checkout, _refs  # noqa: F401
