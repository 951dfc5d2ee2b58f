"""Tool framework. Importing this package registers every built-in tool."""

# Import tool modules so their @registry.tool() decorators execute.
from zuychin.tools import history_tools, memory_tools, utility  # noqa: F401
from zuychin.tools.registry import registry

__all__ = ["registry"]
