"""
Gemini-backed agents.

Each agent lives in its own package with agent.py and prompts.py.
"""

from agents.registry import registry, register_agent
from agents.base import BaseAgent

# Import all agents to register them
from agents.matching.agent import MatchingAgent

__all__ = [
    "registry",
    "register_agent",
    "BaseAgent",
    "MatchingAgent",
]
