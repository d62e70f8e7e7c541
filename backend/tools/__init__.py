from tools.registry import ToolRegistry
from tools.entry_tools import register_entry_tools
from tools.meal_tools import register_meal_tools
from tools.weight_tools import register_weight_tools

tool_registry = ToolRegistry()
register_weight_tools(tool_registry)
register_meal_tools(tool_registry)
register_entry_tools(tool_registry)

__all__ = ["tool_registry", "ToolRegistry"]
