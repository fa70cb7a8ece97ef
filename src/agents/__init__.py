from src.agents.ordering_agent import OrderingAgent

__all__ = ["OrderingAgent"]
