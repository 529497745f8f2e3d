"""Remote store access: entities, configuration and backends"""
