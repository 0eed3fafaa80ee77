from .plan import PagePlan, PageResult

__all__ = ["PagePlan", "PageResult"]
