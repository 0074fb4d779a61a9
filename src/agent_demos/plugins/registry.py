"""
Plugin functions exposed to the model as callable tools.

Methods marked with @kernel_function on a plugin object are collected by
PluginRegistry, described to the model as OpenAI-style function tools
(parameter schemas are generated from the Python signature through
pydantic) and invoked when the model asks for them.
"""

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type, Union, get_type_hints

from pydantic import BaseModel, ValidationError, create_model

logger = logging.getLogger(__name__)

KERNEL_FUNCTION_ATTR = "__kernel_function__"


class PluginError(Exception):
    """Raised when a plugin function cannot be resolved or invoked."""

    pass


def kernel_function(
    func: Optional[Callable] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
):
    """
    Mark a function or method as callable by the model.

    Usable bare (``@kernel_function``) or with arguments
    (``@kernel_function(description="...")``).
    """

    def decorator(fn: Callable) -> Callable:
        doc = inspect.getdoc(fn) or ""
        setattr(fn, KERNEL_FUNCTION_ATTR, {
            "name": name or fn.__name__,
            "description": description or doc.split("\n")[0],
        })
        return fn

    if func is not None:
        return decorator(func)
    return decorator


def _arguments_model(fn: Callable, model_name: str) -> Type[BaseModel]:
    """Build a pydantic model mirroring the callable's parameters."""
    hints = get_type_hints(fn)
    fields: Dict[str, Any] = {}
    for param in inspect.signature(fn).parameters.values():
        if param.name == "self" or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = hints.get(param.name, str)
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[param.name] = (annotation, default)
    return create_model(model_name, **fields)


@dataclass
class PluginFunction:
    """A registered function together with its argument schema."""

    plugin_name: str
    name: str
    description: str
    func: Callable
    arguments_model: Type[BaseModel]

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.plugin_name}-{self.name}"

    def declaration(self) -> Dict[str, Any]:
        schema = self.arguments_model.model_json_schema()
        parameters = {
            "type": "object",
            "properties": schema.get("properties", {}),
        }
        if schema.get("required"):
            parameters["required"] = schema["required"]
        return {
            "type": "function",
            "function": {
                "name": self.fully_qualified_name,
                "description": self.description,
                "parameters": parameters,
            },
        }


class PluginRegistry:
    """Collection of plugin functions available to one agent."""

    def __init__(self):
        self._functions: Dict[str, PluginFunction] = {}

    def add_plugin(self, plugin: Any, plugin_name: Optional[str] = None) -> List[str]:
        """
        Register every @kernel_function method of ``plugin``.

        Args:
            plugin: Object (or class) whose marked methods become tools.
            plugin_name: Namespace for the functions; defaults to the class name.

        Returns:
            Fully qualified names of the registered functions.
        """
        if inspect.isclass(plugin):
            plugin = plugin()
        plugin_name = plugin_name or type(plugin).__name__

        registered = []
        for _, member in inspect.getmembers(plugin, callable):
            meta = getattr(member, KERNEL_FUNCTION_ATTR, None)
            if meta is None:
                continue
            registered.append(self._register(plugin_name, meta, member))

        if not registered:
            raise PluginError(f"Plugin '{plugin_name}' exposes no kernel functions")
        return registered

    def add_function(self, func: Callable, plugin_name: str) -> str:
        """Register a single marked (or plain) function under ``plugin_name``."""
        meta = getattr(func, KERNEL_FUNCTION_ATTR, None)
        if meta is None:
            doc = inspect.getdoc(func) or ""
            meta = {"name": func.__name__, "description": doc.split("\n")[0]}
        return self._register(plugin_name, meta, func)

    def _register(self, plugin_name: str, meta: Dict[str, str], func: Callable) -> str:
        function = PluginFunction(
            plugin_name=plugin_name,
            name=meta["name"],
            description=meta["description"],
            func=func,
            arguments_model=_arguments_model(func, f"{plugin_name}_{meta['name']}_args"),
        )
        key = function.fully_qualified_name
        if key in self._functions:
            raise PluginError(f"Function '{key}' is already registered")
        self._functions[key] = function
        logger.debug(f"Registered plugin function {key}")
        return key

    def declarations(self) -> List[Dict[str, Any]]:
        """Tool declarations for every registered function, in name order."""
        return [self._functions[key].declaration() for key in self.names()]

    def names(self) -> List[str]:
        return sorted(self._functions)

    def get(self, name: str) -> PluginFunction:
        if name not in self._functions:
            raise PluginError(f"Unknown function '{name}'. Available: {self.names()}")
        return self._functions[name]

    async def invoke(self, name: str, arguments: Union[str, Dict[str, Any], None] = None) -> str:
        """
        Invoke a registered function with model-supplied arguments.

        Args:
            name: Fully qualified function name ("Plugin-function").
            arguments: JSON object string or dict of arguments.

        Returns:
            The function's result rendered as text.

        Raises:
            PluginError: Unknown function, malformed arguments or a failing function.
        """
        function = self.get(name)

        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError as e:
                raise PluginError(f"Arguments for '{name}' are not valid JSON: {e}") from e
        try:
            parsed = function.arguments_model.model_validate(arguments or {})
        except ValidationError as e:
            raise PluginError(f"Invalid arguments for '{name}': {e}") from e

        try:
            result = function.func(**parsed.model_dump())
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            raise PluginError(f"Function '{name}' failed: {e}") from e

        if isinstance(result, str):
            return result
        return json.dumps(result, default=str)

    def __len__(self) -> int:
        return len(self._functions)

    def __contains__(self, name: str) -> bool:
        return name in self._functions
