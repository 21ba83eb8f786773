"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to a handler. Routes are tried in registration order
and the first match wins.

=============================================================================
MATCHING MODES
=============================================================================

    ┌──────────────┬──────────────────────────────┬────────────────────────┐
    │ Mode         │ GET /doctor route matches    │ Path parameters        │
    ├──────────────┼──────────────────────────────┼────────────────────────┤
    │ exact        │ /doctor                      │ :name segments         │
    │ (default)    │                              │ /prescription-list/7   │
    │              │                              │   → {"patient_id":"7"} │
    ├──────────────┼──────────────────────────────┼────────────────────────┤
    │ prefix       │ /doctor, /doctors,           │ third "/" segment,     │
    │ (legacy)     │ /doctor/anything             │ see request.get_id()   │
    └──────────────┴──────────────────────────────┴────────────────────────┘

Prefix mode reproduces how the first clinic deployment dispatched, by
testing whether the request started with "GET /doctor". Old front-desk
tools depend on it.

In both modes an unmatched request gets 404 "404 Not Found". There is no
405: a known path with the wrong method is treated as an unknown path.
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
import re

from .request import HTTPRequest, get_id
from .response import HTTPResponse, not_found


Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    A registered route.

        Route(
            path="/prescription-list/:patient_id",
            method="GET",
            handler=list_prescriptions,
            _pattern=re.compile(r"/prescription\\-list/(?P<patient_id>[^/]+)"),
            _prefix="/prescription-list",
            _param_names=["patient_id"],
        )
    """

    path: str
    method: str
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _prefix: str = field(default="", repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    Request router with exact and prefix matching.

    ==========================================================================
    USAGE
    ==========================================================================

        router = Router()
        router.add_route("/doctor", create_doctor, "POST")
        router.add_route("/prescription-list/:patient_id", list_prescriptions, "GET")

        response = router.handle(request)
        request.path_params        # {"patient_id": "42"}

    ==========================================================================
    """

    def __init__(self, prefix_matching: bool = False):
        """
        Args:
            prefix_matching: Match on the static prefix of each route
                             instead of the whole path.
        """
        self.prefix_matching = prefix_matching
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: str,
        name: Optional[str] = None,
    ) -> Route:
        pattern, param_names = self._compile_pattern(path)
        route = Route(
            path=path,
            method=method.upper(),
            handler=handler,
            name=name,
            _pattern=pattern,
            _prefix=self._static_prefix(path),
            _param_names=param_names,
        )
        self._routes.append(route)
        return route

    def _compile_pattern(self, path: str) -> tuple:
        """
        Compile a route pattern into a regex for fullmatch().

            "/prescription-list/:patient_id"
                → /prescription\\-list/(?P<patient_id>[^/]+)
        """
        param_names: List[str] = []
        regex_parts = []

        for segment in path.split("/"):
            if not segment:
                continue
            regex_parts.append("/")
            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")
            else:
                regex_parts.append(re.escape(segment))

        return re.compile("".join(regex_parts) or "/"), param_names

    @staticmethod
    def _static_prefix(path: str) -> str:
        # "/prescription-list/:patient_id" → "/prescription-list"
        marker = path.find("/:")
        return path if marker == -1 else path[:marker] or "/"

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        First route accepting method and path, or None.

        Methods are compared case-sensitively: "get" is not "GET".
        """
        for route in self._routes:
            if route.method != method:
                continue

            if self.prefix_matching:
                if path.startswith(route._prefix):
                    params = {name: get_id(path) for name in route._param_names[:1]}
                    return RouteMatch(route=route, params=params)
            else:
                found = route._pattern.fullmatch(path)
                if found:
                    return RouteMatch(route=route, params=found.groupdict())

        return None

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch request to its handler, or answer 404."""
        match = self.match(request.method, request.path)
        if match is None:
            return not_found()

        request.path_params = match.params
        return match.route.handler(request)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def routes(self) -> List[Route]:
        return list(self._routes)

    def describe(self) -> List[str]:
        """One "METHOD path" line per route, in priority order."""
        return [f"{route.method:6} {route.path}" for route in self._routes]
