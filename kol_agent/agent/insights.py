"""Short, deterministic insight lines derived from successful tool payloads."""


def _kol_label(kol: dict | None) -> str:
    if not kol:
        return "unknown KOL"
    name = kol.get("name") or "unknown"
    username = kol.get("username")
    return f"{name} (@{username})" if username else name


def _recommend_insights(payload: dict) -> list[str]:
    kols = payload.get("kols") or []
    lines = [f"Found {len(kols)} KOL{'s' if len(kols) != 1 else ''}"]
    if kols:
        top = kols[0]
        lines.append(f"Top KOL by followers: {_kol_label(top)} with {top.get('followers', 0):,} followers")
    return lines


def _posts_insights(payload: dict) -> list[str]:
    posts = payload.get("posts") or []
    lines = [f"Analyzed {len(posts)} post{'s' if len(posts) != 1 else ''}"]
    if posts:
        best = max(posts, key=lambda p: (p.get("likes", 0), p.get("comments", 0)))
        lines.append(
            f"Most liked post: {best.get('likes', 0):,} likes by {_kol_label(best.get('kol'))} on {best.get('platform')}"
        )
    return lines


def _metrics_insights(payload: dict) -> list[str]:
    if payload.get("scope") == "kol":
        metrics = [m for m in payload.get("metrics") or [] if m.get("totalPosts")]
        if not metrics:
            return ["No posts matched the metrics filters"]
        top = metrics[0]
        return [
            f"Engagement computed for {len(metrics)} KOL{'s' if len(metrics) != 1 else ''} with posts",
            f"Highest total likes: {_kol_label(top.get('kol'))} with {top.get('totalLikes', 0):,} likes "
            f"across {top.get('totalPosts', 0)} posts",
        ]
    total = payload.get("totalPosts", 0)
    if not total:
        return ["No posts matched the metrics filters"]
    return [
        f"{total:,} posts with {payload.get('totalLikes', 0):,} likes and {payload.get('totalComments', 0):,} comments",
        f"Average {payload.get('avgLikes', 0):,.1f} likes and {payload.get('avgComments', 0):,.1f} comments per post",
    ]


def _search_insights(payload: dict) -> list[str]:
    posts = payload.get("posts") or []
    if not posts:
        return [f"No posts semantically matched {payload.get('query')!r}"]
    best = max(p.get("similarity", 0.0) for p in posts)
    return [f"{len(posts)} post{'s' if len(posts) != 1 else ''} matched semantically (best similarity {best:.2f})"]


_BUILDERS = {
    "recommend_kols": _recommend_insights,
    "analyze_posts": _posts_insights,
    "aggregate_metrics": _metrics_insights,
    "semantic_search": _search_insights,
}


def extract_insights(payloads: list[dict]) -> list[str]:
    """One or two lines per payload, in call order, without duplicates."""
    lines: list[str] = []
    for payload in payloads:
        builder = _BUILDERS.get(payload.get("type"))
        if builder is None:
            continue
        for line in builder(payload):
            if line not in lines:
                lines.append(line)
    return lines
