from .registry import PromptRegistry, PromptTemplate

__all__ = ["PromptRegistry", "PromptTemplate"]
