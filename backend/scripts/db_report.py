#!/usr/bin/env python
"""
数据库健康报告脚本 (DB Report)

对配置的数据库执行一次健康检查和诊断扫描，输出文本或 JSON 报告。
使用方法：
    python scripts/db_report.py [--large-tables N] [--unused-indexes] [--json]

退出码：
    0 - healthy
    1 - degraded
    2 - critical
"""

import sys
import json
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

# 添加 backend 目录到 sys.path
BACKEND_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BACKEND_DIR))

from core.alert_sink import count_recent_alerts
from core.config import get_settings
from core.db_monitor import DatabaseMonitor
from core.health_checker import HealthStatus

logger = logging.getLogger(__name__)

EXIT_CODES = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.CRITICAL: 2,
}

STATUS_ICONS = {
    HealthStatus.HEALTHY: "✅",
    HealthStatus.DEGRADED: "⚠️",
    HealthStatus.CRITICAL: "❌",
}


async def build_report(
    monitor: DatabaseMonitor,
    large_tables: int = 0,
    unused_indexes: bool = False,
    session_factory: Optional[Callable] = None
) -> Dict[str, Any]:
    """
    执行健康检查和诊断扫描，汇总为报告

    传入 session_factory 时统计最近 1 小时保存的告警条数，读取失败则不输出该项
    """
    verdict = await monitor.check_health()
    report: Dict[str, Any] = {"health": verdict.to_dict()}

    if session_factory is not None:
        try:
            async with session_factory() as db:
                report["recent_alerts"] = await count_recent_alerts(db, hours=1)
        except Exception as e:
            logger.warning(f"读取告警记录失败: {e}")

    if large_tables > 0:
        tables = await monitor.find_large_tables(large_tables)
        report["large_tables"] = [t.to_dict() for t in tables]

    if unused_indexes:
        indexes = await monitor.find_unused_indexes()
        report["unused_indexes"] = [i.to_dict() for i in indexes]

    return report


def format_report(report: Dict[str, Any]) -> str:
    """格式化为文本报告"""
    health = report["health"]
    status = HealthStatus(health["status"])
    lines: List[str] = [
        f"{STATUS_ICONS[status]} 数据库状态: {status.value}",
        "",
        "检查项:",
    ]

    if health["checks"]:
        for name, ok in health["checks"].items():
            lines.append(f"  {'✓' if ok else '✗'} {name}")
    else:
        lines.append(f"  (未完成) {health['details'].get('error', '')}")

    details = health["details"]
    if "database_info" in details:
        info = details["database_info"]
        conns = details["connections"]
        lines += [
            "",
            f"大小: {info['size_pretty']}  表: {info['table_count']}  索引: {info['index_count']}",
            f"缓存命中率: {info['cache_hit_ratio_percent']}%",
            f"连接: 共 {conns['total']} / 活跃 {conns['active']} / 空闲 {conns['idle']} / 事务中 {conns['waiting']}",
            f"存活延迟: {details['connection_latency_ms']}ms",
        ]

    if "recent_alerts" in report:
        lines.append(f"最近 1 小时告警: {report['recent_alerts']} 条")

    if "large_tables" in report:
        lines += ["", "最大的表:"]
        for table in report["large_tables"]:
            lines.append(f"  {table['table_name']:<40} {table['size_pretty']:>12}  ~{table['row_count_approx']} 行")

    if "unused_indexes" in report:
        lines += ["", "未使用的索引:"]
        if not report["unused_indexes"]:
            lines.append("  (无)")
        for index in report["unused_indexes"]:
            lines.append(f"  {index['table_name']}.{index['index_name']} ({index['size_pretty']})")

    return "\n".join(lines)


async def run(args: argparse.Namespace) -> int:
    """创建监控器、生成报告并返回退出码"""
    from core.database import engine, async_session, close_db

    settings = get_settings()
    monitor = DatabaseMonitor.from_settings(engine, settings)
    try:
        report = await build_report(
            monitor, args.large_tables, args.unused_indexes, session_factory=async_session
        )
    finally:
        await close_db()

    if args.json:
        print(json.dumps(report, ensure_ascii=False, indent=2))
    else:
        print(format_report(report))

    return EXIT_CODES[HealthStatus(report["health"]["status"])]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="数据库健康报告")
    parser.add_argument("--large-tables", type=int, default=0, metavar="N", help="列出最大的 N 张表")
    parser.add_argument("--unused-indexes", action="store_true", help="列出未使用的索引")
    parser.add_argument("--json", action="store_true", help="以 JSON 格式输出")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s - %(levelname)s - %(message)s")
    args = parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
