"""
PostgreSQL 探测查询
所有语句均为只读，依赖 PostgreSQL 的系统视图（pg_stat_activity、pg_stat_database 等），
其他数据库引擎需要提供自己的版本
"""

# 存活检查
LIVENESS = "SELECT 1"

# 当前数据库的会话按状态分组
CONNECTION_STATES = """
SELECT state, COUNT(*) AS count
FROM pg_stat_activity
WHERE datname = current_database()
GROUP BY state
"""

# 数据库大小（字节 + 可读格式）
DATABASE_SIZE = """
SELECT
    pg_database_size(current_database()) AS size_bytes,
    pg_size_pretty(pg_database_size(current_database())) AS size_pretty
"""

# public 模式下的表和索引数量
OBJECT_COUNTS = """
SELECT
    (SELECT COUNT(*) FROM information_schema.tables
     WHERE table_schema = 'public' AND table_type = 'BASE TABLE') AS table_count,
    (SELECT COUNT(*) FROM pg_indexes WHERE schemaname = 'public') AS index_count
"""

# 缓冲区命中率（百分比），无读写时为 NULL
CACHE_HIT_RATIO = """
SELECT
    ROUND(
        100.0 * SUM(blks_hit) / NULLIF(SUM(blks_hit) + SUM(blks_read), 0),
        2
    ) AS cache_hit_ratio
FROM pg_stat_database
WHERE datname = current_database()
"""

# 按总占用空间排序的表，行数取统计信息中的估算值
LARGE_TABLES = """
SELECT
    c.relname AS table_name,
    pg_size_pretty(pg_total_relation_size(c.oid)) AS size_pretty,
    CAST(GREATEST(c.reltuples, 0) AS BIGINT) AS row_count_approx
FROM pg_class c
JOIN pg_namespace n ON n.oid = c.relnamespace
WHERE n.nspname = 'public' AND c.relkind = 'r'
ORDER BY pg_total_relation_size(c.oid) DESC
LIMIT :limit
"""

# 自上次统计重置以来从未被扫描过的索引
UNUSED_INDEXES = """
SELECT
    schemaname || '.' || relname AS table_name,
    indexrelname AS index_name,
    pg_size_pretty(pg_relation_size(indexrelid)) AS size_pretty
FROM pg_stat_user_indexes
WHERE idx_scan = 0 AND schemaname = 'public'
ORDER BY pg_relation_size(indexrelid) DESC
"""
