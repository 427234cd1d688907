from aistudio.models.feed import FeedSource

FEED_SOURCES = (
    FeedSource(
        name="TechCrunch",
        url="https://techcrunch.com/feed/",
        category="Tech News",
        description="Startup and technology news",
    ),
    FeedSource(
        name="The Verge",
        url="https://www.theverge.com/rss/index.xml",
        category="Tech News",
        description="Technology, science, art, and culture",
    ),
    FeedSource(
        name="Wired",
        url="https://www.wired.com/feed/rss",
        category="Tech News",
        description="Technology trends and culture",
    ),
    FeedSource(
        name="Hacker News",
        url="https://news.ycombinator.com/rss",
        category="Tech Community",
        description="Tech community discussions",
    ),
    FeedSource(
        name="Ars Technica",
        url="https://feeds.arstechnica.com/arstechnica/index",
        category="Tech News",
        description="Technology news and analysis",
    ),
    FeedSource(
        name="Engadget",
        url="https://www.engadget.com/rss.xml",
        category="Gadgets",
        description="Consumer electronics and gadgets",
    ),
    FeedSource(
        name="MIT Technology Review",
        url="https://www.technologyreview.com/feed/",
        category="Innovation",
        description="Emerging technology and innovation",
    ),
    FeedSource(
        name="VentureBeat",
        url="https://venturebeat.com/feed/",
        category="AI & Business",
        description="AI, gaming, and tech business",
    ),
)
