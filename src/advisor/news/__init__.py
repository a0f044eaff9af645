from advisor.news.sentiment import NewsFeed, NewsSentimentService

__all__ = ["NewsFeed", "NewsSentimentService"]
