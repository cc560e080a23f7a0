"""
后台周期任务
应用启动后按固定间隔运行协程（目前用于数据库健康快照），关闭时统一取消
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List

logger = logging.getLogger(__name__)


class Scheduler:
    """周期任务调度器，每个任务名只能调度一次"""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}
        self.running = False

    @property
    def tasks(self) -> List[asyncio.Task]:
        return list(self._tasks.values())

    def is_scheduled(self, name: str) -> bool:
        task = self._tasks.get(name)
        return task is not None and not task.done()

    async def _loop(
        self,
        func: Callable[[], Awaitable],
        interval_seconds: float,
        name: str,
        run_immediately: bool
    ):
        if not run_immediately:
            await asyncio.sleep(interval_seconds)
        while self.running:
            try:
                logger.debug(f"执行定期任务: {name}")
                await func()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # 失败后不重试，等下一个周期
                logger.error(f"定期任务执行失败 {name}: {e}", exc_info=True)
            await asyncio.sleep(interval_seconds)

    async def schedule_periodic(
        self,
        func: Callable[[], Awaitable],
        interval_seconds: float,
        name: str = "periodic_task",
        run_immediately: bool = True
    ):
        """
        调度定期任务

        Args:
            func: 无参异步函数
            interval_seconds: 两次执行之间的间隔（秒）
            name: 任务名称，重复调度同名任务会被忽略
            run_immediately: 是否在调度后立即执行一次
        """
        if self.is_scheduled(name):
            logger.warning(f"定期任务已存在，忽略重复调度: {name}")
            return

        self._tasks[name] = asyncio.create_task(
            self._loop(func, interval_seconds, name, run_immediately),
            name=name
        )
        logger.debug(f"已调度定期任务: {name}, 间隔: {interval_seconds}秒")

    def start(self):
        """启动调度器"""
        self.running = True
        logger.debug("任务调度器已启动")

    async def stop(self, timeout: float = 10.0):
        """
        停止调度器，取消运行中的任务

        Args:
            timeout: 等待任务退出的超时时间（秒）
        """
        self.running = False
        pending = list(self._tasks.values())
        self._tasks.clear()
        if not pending:
            logger.debug("任务调度器已停止（无活跃任务）")
            return

        for task in pending:
            task.cancel()

        try:
            await asyncio.wait_for(asyncio.gather(*pending, return_exceptions=True), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"调度器停止超时（{timeout}s）")

        logger.debug("任务调度器已停止")
