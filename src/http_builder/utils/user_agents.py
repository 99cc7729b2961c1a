"""
User-Agent строки реальных браузеров.

Client по умолчанию подставляет случайный User-Agent из этой таблицы.
"""

import random
from dataclasses import dataclass
from typing import List, Literal, Optional

BrowserType = Literal["chrome", "firefox", "safari", "edge"]


@dataclass(frozen=True)
class UserAgentInfo:
    """Информация о User-Agent строке"""

    ua_string: str
    browser: BrowserType
    weight: float  # для weighted выбора


USER_AGENTS: List[UserAgentInfo] = [
    UserAgentInfo(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "chrome", 0.95
    ),
    UserAgentInfo(
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "chrome", 0.80
    ),
    UserAgentInfo(
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
        "chrome", 0.60
    ),
    UserAgentInfo(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
        "firefox", 0.70
    ),
    UserAgentInfo(
        "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:120.0) Gecko/20100101 Firefox/120.0",
        "firefox", 0.40
    ),
    UserAgentInfo(
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.1 Safari/605.1.15",
        "safari", 0.60
    ),
    UserAgentInfo(
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1",
        "safari", 0.50
    ),
    UserAgentInfo(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
        "edge", 0.50
    ),
]

DEFAULT_USER_AGENT = USER_AGENTS[0].ua_string


def random_user_agent(
    browser: Optional[BrowserType] = None,
    rng: Optional[random.Random] = None
) -> str:
    """
    Случайный User-Agent, взвешенный по популярности.

    Args:
        browser: Ограничить одним браузером
        rng: Источник случайности (для тестов)

    Raises:
        ValueError: Неизвестный браузер

    Examples:
        >>> ua = random_user_agent()
        >>> ua = random_user_agent("firefox")
    """
    candidates = [ua for ua in USER_AGENTS if browser is None or ua.browser == browser]
    if not candidates:
        raise ValueError(f"no user agents for browser: {browser}")
    rng = rng or random
    chosen = rng.choices(candidates, weights=[ua.weight for ua in candidates], k=1)[0]
    return chosen.ua_string
