from __future__ import annotations

from selectolax.parser import HTMLParser

from headline_harvester.engine.strategies import (
    MAX_CANDIDATES,
    AlternateLinkStrategy,
    CandidateCollector,
    GenericStrategy,
    MetaTagStrategy,
)

COINDESK = "https://www.coindesk.com"
COINTELEGRAPH = "https://cointelegraph.com"


def test_collector_enforces_cap_length_and_keys() -> None:
    collector = CandidateCollector(cap=2, min_title=10)
    assert collector.add("Short", "https://a.com/1") is False
    assert collector.add("Long enough title", "https://a.com/1") is True
    assert collector.add("Another long enough title", "https://a.com/1") is False
    assert collector.add("Untitled link-less headline", None) is True
    assert collector.full
    assert collector.add("Overflowing long headline", "https://a.com/3") is False
    assert [item.url for item in collector.items] == ["https://a.com/1", None]


def test_collector_truncates_long_titles() -> None:
    collector = CandidateCollector()
    collector.add("x" * 500, "https://a.com/long")
    assert len(collector.items[0].title) == 300


def test_meta_tag_strategy_reads_identity_attributes() -> None:
    html = """
    <html><body>
      <div class="card" data-url="/markets/2024/10/07/bitcoin-rallies">
        <h3>Bitcoin rallies past a key resistance level</h3>
      </div>
      <div class="card" data-url="/policy/2024/10/07/ether-slides-on-etf-delay"></div>
      <div class="card" data-url="/about-us"><h3>About our newsroom and editorial team</h3></div>
    </body></html>
    """
    candidates = MetaTagStrategy().extract(HTMLParser(html), COINDESK)
    assert [(c.title, c.url) for c in candidates] == [
        (
            "Bitcoin rallies past a key resistance level",
            "https://www.coindesk.com/markets/2024/10/07/bitcoin-rallies",
        ),
        (
            "Ether Slides On Etf Delay",
            "https://www.coindesk.com/policy/2024/10/07/ether-slides-on-etf-delay",
        ),
    ]


def test_meta_tag_strategy_container_pass() -> None:
    html = """
    <html><body>
      <article>
        <a href="/video/clip">Watch</a>
        <a href="/tech/2024/10/07/new-rollup-launches">New rollup launches on mainnet this week</a>
      </article>
      <article><a href="/opinion/some-take">An opinion piece with a long title</a></article>
    </body></html>
    """
    candidates = MetaTagStrategy().extract(HTMLParser(html), COINDESK)
    assert len(candidates) == 1
    assert candidates[0].title == "New rollup launches on mainnet this week"
    assert candidates[0].url == "https://www.coindesk.com/tech/2024/10/07/new-rollup-launches"


def test_alternate_link_strategy_titles() -> None:
    html = """
    <html>
      <head>
        <meta property="og:url" content="https://cointelegraph.com/news/bitcoin-hits-record">
        <meta property="og:title" content="Bitcoin hits a fresh record high">
        <link rel="alternate" hreflang="en" href="https://cointelegraph.com/news/bitcoin-hits-record">
      </head>
      <body>
        <a hreflang="es" href="/news/ethereum-upgrade-goes-live">ES</a>
        <a href="/news/ethereum-upgrade-goes-live">Ethereum upgrade goes live on mainnet today</a>
        <a hreflang="en" href="/tags/bitcoin">Bitcoin</a>
        <a hreflang="de" href="/magazine/defi-summer-returns">DE</a>
      </body>
    </html>
    """
    candidates = AlternateLinkStrategy().extract(HTMLParser(html), COINTELEGRAPH)
    assert [(c.title, c.url) for c in candidates] == [
        ("Bitcoin hits a fresh record high", "https://cointelegraph.com/news/bitcoin-hits-record"),
        (
            "Ethereum upgrade goes live on mainnet today",
            "https://cointelegraph.com/news/ethereum-upgrade-goes-live",
        ),
        ("Defi Summer Returns", "https://cointelegraph.com/magazine/defi-summer-returns"),
    ]


def test_alternate_link_strategy_secondary_pass() -> None:
    html = """
    <html><body>
      <div class="post-card">
        <h2>Solana validators vote on a fee market change</h2>
        <a href="/news/solana-fee-vote">Read more</a>
      </div>
      <div class="post-card"><a href="/press-releases/launch">Press release announcement</a></div>
    </body></html>
    """
    candidates = AlternateLinkStrategy().extract(HTMLParser(html), COINTELEGRAPH)
    assert [(c.title, c.url) for c in candidates] == [
        (
            "Solana validators vote on a fee market change",
            "https://cointelegraph.com/news/solana-fee-vote",
        )
    ]


def test_generic_strategy_caps_matches() -> None:
    blocks = "".join(
        f'<article><h2><a href="/news/story-{n}">Headline number {n} about the market</a></h2></article>'
        for n in range(50)
    )
    candidates = GenericStrategy().extract(HTMLParser(f"<body>{blocks}</body>"), "https://x.io")
    assert len(candidates) == MAX_CANDIDATES
    assert candidates[0].url == "https://x.io/news/story-0"
    assert len({c.url for c in candidates}) == len(candidates)


def test_generic_strategy_filters() -> None:
    html = """
    <body>
      <article><h2><a href="/category/markets">Markets category overview and latest</a></h2></article>
      <article><h2><a href="/news/short">Too short</a></h2></article>
      <div class="headline" href="/news/own-href">Headline carrying its own href attribute</div>
      <article><h3>A headline without any link at all here</h3></article>
    </body>
    """
    candidates = GenericStrategy().extract(HTMLParser(html), "https://x.io")
    assert [(c.title, c.url) for c in candidates] == [
        ("A headline without any link at all here", None),
        ("Headline carrying its own href attribute", "https://x.io/news/own-href"),
    ]


def test_generic_strategy_uses_parent_text_for_empty_elements() -> None:
    html = '<body><p>Parent paragraph carries the visible headline <span class="title"></span></p></body>'
    candidates = GenericStrategy().extract(HTMLParser(html), "https://x.io")
    assert candidates[0].title == "Parent paragraph carries the visible headline"
