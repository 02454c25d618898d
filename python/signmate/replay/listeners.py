"""
Listener Registry - 监听器注册表

注册回调时返回 Subscription 句柄，调用句柄即可取消订阅。
单个回调抛出的异常被捕获并记录，不影响其他回调。
"""

import logging
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)


class Subscription:
    """订阅句柄（可调用，调用即取消订阅）"""

    def __init__(self, registry: "ListenerRegistry", token: int):
        self._registry = registry
        self._token = token

    @property
    def active(self) -> bool:
        return self._registry.has(self._token)

    def unsubscribe(self) -> bool:
        """取消订阅，返回是否确实移除了回调"""
        return self._registry.remove(self._token)

    def __call__(self) -> bool:
        return self.unsubscribe()


class ListenerRegistry:
    """
    回调注册表

    使用示例：
    ```python
    registry = ListenerRegistry("recorder")
    unsubscribe = registry.add(lambda event: print(event.type))
    registry.emit(event)
    unsubscribe()
    ```
    """

    def __init__(self, name: str = "listeners"):
        self.name = name
        self._handlers: Dict[int, Callable[..., Any]] = {}
        self._next_token = 0

    def __len__(self) -> int:
        return len(self._handlers)

    def add(self, handler: Callable[..., Any]) -> Subscription:
        """注册回调"""
        token = self._next_token
        self._next_token += 1
        self._handlers[token] = handler
        return Subscription(self, token)

    def has(self, token: int) -> bool:
        return token in self._handlers

    def remove(self, token: int) -> bool:
        return self._handlers.pop(token, None) is not None

    def clear(self) -> None:
        self._handlers.clear()

    def emit(self, *args, **kwargs) -> int:
        """
        按注册顺序调用所有回调

        Returns:
            抛出异常的回调数量
        """
        failures = 0
        # 回调中可能取消订阅，遍历副本
        for handler in list(self._handlers.values()):
            try:
                handler(*args, **kwargs)
            except Exception as e:
                failures += 1
                logger.error(f"Callback error for {self.name}: {type(e).__name__}: {e}")
        return failures
