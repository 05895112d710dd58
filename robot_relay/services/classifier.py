from typing import Iterable, Optional

from robot_relay.config import DEFAULT_BROWSER_SIGNATURES
from robot_relay.models import Role


class ConnectionClassifier:
    """
    Decide whether a handshake comes from a robot or a browser.

    An explicit role from the endpoint path (``/robot``, ``/web``) wins.
    Otherwise any User-Agent carrying a common browser signature is treated
    as a web client and everything else as a robot. This is a routing
    heuristic only; a client can claim any User-Agent it likes.
    """

    def __init__(self, browser_signatures: Iterable[str] = DEFAULT_BROWSER_SIGNATURES):
        self.browser_signatures = tuple(sig.lower() for sig in browser_signatures if sig)

    def classify(self, user_agent: Optional[str], role_hint: Optional[Role] = None) -> Role:
        if role_hint is not None:
            return role_hint
        if user_agent and self.is_browser(user_agent):
            return Role.WEB_CLIENT
        return Role.ROBOT

    def is_browser(self, user_agent: str) -> bool:
        agent = user_agent.lower()
        return any(sig in agent for sig in self.browser_signatures)
