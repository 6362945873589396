from newscrawler.models.article import Article

__all__ = ["Article"]
