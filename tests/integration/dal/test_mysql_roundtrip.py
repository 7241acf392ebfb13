import asyncio
import json
import shutil
import socket
import subprocess
import uuid

import aiomysql
import pytest

from common.sql.dialect import Dialect
from dal.config import DatabaseSettings
from dal.guardrails import GuardrailConfig
from mcp_server.runtime import QueryRuntime
from mcp_server.tools import get_table_schema, get_tables, query_delete, query_insert, query_select


def _get_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("", 0))
        return sock.getsockname()[1]


async def _wait_for_mysql(host: str, port: int, user: str, password: str, db: str) -> None:
    for _ in range(60):
        try:
            conn = await aiomysql.connect(
                host=host, port=port, user=user, password=password, db=db, autocommit=True
            )
            conn.close()
            return
        except Exception:
            await asyncio.sleep(1)
    raise RuntimeError("Timed out waiting for MySQL to be ready.")


@pytest.mark.asyncio
async def test_mysql_insert_select_delete_roundtrip():
    """Insert a row through the tools, read it back, then delete it under the row cap."""
    if not shutil.which("docker"):
        pytest.skip("docker not available")

    container_name = f"guarded-sql-mysql-{uuid.uuid4().hex[:8]}"
    port = _get_free_port()
    subprocess.run(
        [
            "docker",
            "run",
            "-d",
            "--rm",
            "--name",
            container_name,
            "-e",
            "MYSQL_ROOT_PASSWORD=secret",
            "-e",
            "MYSQL_DATABASE=shop",
            "-p",
            f"{port}:3306",
            "mysql:8.0",
        ],
        check=True,
    )

    try:
        await _wait_for_mysql("127.0.0.1", port, "root", "secret", "shop")
        conn = await aiomysql.connect(
            host="127.0.0.1", port=port, user="root", password="secret", db="shop", autocommit=True
        )
        async with conn.cursor() as cursor:
            await cursor.execute(
                "CREATE TABLE users (id INT AUTO_INCREMENT PRIMARY KEY, name VARCHAR(50))"
            )
        conn.close()

        settings = DatabaseSettings(
            dialect=Dialect.MYSQL,
            host="127.0.0.1",
            port=port,
            user="root",
            password="secret",
            allowlist=("shop",),
        )
        QueryRuntime.set_service(None)
        await QueryRuntime.init(settings, GuardrailConfig())
        try:
            tables = json.loads(await get_tables.handler(database="shop"))
            assert tables["result"] == ["users"]

            schema = json.loads(await get_table_schema.handler(database="shop", table="users"))
            assert [c["type"] for c in schema["result"]["columns"]] == ["int", "varchar(50)"]

            inserted = json.loads(
                await query_insert.handler(database="shop", table="users", data={"name": "Ada"})
            )
            assert inserted["result"]["rows_affected"] == 1

            selected = json.loads(
                await query_select.handler(
                    database="shop",
                    table="users",
                    columns=["name"],
                    where=[{"column": "name", "op": "=", "value": "Ada"}],
                )
            )
            assert selected["result"]["rows"] == [{"name": "Ada"}]

            deleted = json.loads(
                await query_delete.handler(
                    database="shop", table="users", where=[{"column": "name", "value": "Ada"}]
                )
            )
            assert deleted["result"]["rows_affected"] == 1
        finally:
            await QueryRuntime.close()
    finally:
        subprocess.run(["docker", "stop", container_name], check=False)
