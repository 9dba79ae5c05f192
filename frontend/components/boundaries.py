import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from frontend.hydration import render_state_script
from shared.logging_config import logger


ErrorFallback = Callable[[Exception], str]


def default_error_fallback(error: Exception) -> str:
    return '<div class="error-boundary" role="alert">Something went wrong.</div>'


async def suspense_boundary(
    render: Callable[[], Awaitable[str]],
    fallback: str,
    error_fallback: Optional[ErrorFallback] = None,
    timeout: Optional[float] = None,
) -> str:
    """Дождаться приостановленного компонента.

    Если компонент не успел за timeout секунд - отдаём fallback, данные догрузит браузер.
    Если компонент упал - отдаём error_fallback вместо падения всей страницы.
    """
    try:
        if timeout is None:
            return await render()
        return await asyncio.wait_for(render(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Компонент не отрендерился за %.2fs, отдаём fallback", timeout)
        return fallback
    except Exception as e:  # noqa: BLE001
        logger.error("Ошибка рендера компонента: %s", e, exc_info=True)
        return (error_fallback or default_error_fallback)(e)


def hydration_boundary(state: Dict[str, Any], content: str) -> str:
    """Обернуть разметку и положить рядом состояние кэша для браузера."""
    return f'<div data-hydration-boundary="">{content}</div>{render_state_script(state)}'
