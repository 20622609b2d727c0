"""Route candidates and best-route selection."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class RouteType(Enum):
    GLOBAL_ACTION = "GlobalAction"
    ACTIVE_DIALOG = "ActiveDialog"


# Меньше - приоритетнее
_ROUTE_PRIORITY = {
    RouteType.ACTIVE_DIALOG: 2,
    RouteType.GLOBAL_ACTION: 4,
}


@dataclass
class RouteResult:
    """
    Кандидат маршрута для хода.

    Attributes:
        score: Уверенность маршрута
        library_name: Библиотека диалогов ("*" - диалоги бота)
        route_type: Тип маршрута
        route_data: Данные маршрута (например, {"dialog_id": "*:help"})
    """
    score: float
    library_name: str
    route_type: RouteType
    route_data: Dict[str, Any] = field(default_factory=dict)


def best_route_result(
    routes: List[RouteResult],
    dialog_stack: Optional[List[str]],
    root_library_name: str,
) -> Optional[RouteResult]:
    """
    Выбрать лучший маршрут из кандидатов.

    Библиотека-фаворит - самая глубокая библиотека стека, у которой есть
    маршрут (иначе корневая). Маршруты этой библиотеки получают бонус к
    приоритету. Маршруты с нулевым score не рассматриваются.
    """
    best_library = root_library_name
    for entry in dialog_stack or []:
        library = entry.split(":", 1)[0]
        if any(route.library_name == library for route in routes):
            best_library = library

    best = None
    best_priority = 5
    for route in routes:
        if route.score <= 0.0:
            continue
        priority = _ROUTE_PRIORITY.get(route.route_type, 1)
        if route.library_name == best_library:
            priority -= 1
        if best is None or priority < best_priority:
            best = route
            best_priority = priority
    return best
