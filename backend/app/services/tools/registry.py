"""Tool registry - central place to register and look up all available tools."""

from app.services.integrations.coingecko import CoinGeckoClient, get_coingecko_client
from app.services.tools.base import BaseTool, ToolDefinition
from app.services.tools.crypto_tools import CryptoByQueryTool, CryptosByCategoryTool, TopCryptosTool


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: dict[str, BaseTool] = {}

    def register(self, tool: BaseTool) -> None:
        defn = tool.definition()
        self._tools[defn.name] = tool

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def definitions(self) -> list[ToolDefinition]:
        return [tool.definition() for tool in self._tools.values()]

    def gemini_declarations(self) -> list[dict]:
        return [defn.to_gemini_schema() for defn in self.definitions()]


def create_default_registry(client: CoinGeckoClient | None = None) -> ToolRegistry:
    """Create a registry with the market data tools sharing one CoinGecko client.

    Without an explicit client the process-wide one is used, so chat tool calls
    reuse the same response cache as the market routes.
    """
    client = client or get_coingecko_client()
    registry = ToolRegistry()
    registry.register(TopCryptosTool(client))
    registry.register(CryptoByQueryTool(client))
    registry.register(CryptosByCategoryTool(client))
    return registry
