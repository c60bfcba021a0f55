from .advisor import IndexAdvisorAgent

__all__ = ["IndexAdvisorAgent"]
