import os, time
from urllib.parse import urlparse

import psycopg2

DATABASE_URL = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URI")
if not DATABASE_URL:
    raise SystemExit("DATABASE_URL is not set")

timeout_s = int(os.getenv("DB_WAIT_TIMEOUT", "60"))


def wait_for(database_url: str) -> None:
    # SQLAlchemy URL may start with postgresql+psycopg2://
    url = (database_url.replace("postgresql+psycopg2://", "postgresql://")
           .replace("postgres://", "postgresql://"))
    if not url.startswith("postgresql://"):
        print(f"[wait_for_db] {url.split(':', 1)[0]} database needs no wait.")
        return
    p = urlparse(url)

    host = p.hostname or "db"
    port = p.port or 5432
    user = p.username or "aerive"
    password = p.password or "aerive"
    dbname = (p.path or "/aerive").lstrip("/") or "aerive"

    start = time.time()
    print(f"[wait_for_db] Waiting for Postgres at {host}:{port} db={dbname} user={user} (timeout={timeout_s}s)")
    while True:
        try:
            conn = psycopg2.connect(host=host, port=port, user=user, password=password, dbname=dbname)
            conn.close()
            print("[wait_for_db] Postgres is ready.")
            return
        except psycopg2.OperationalError as e:
            if time.time() - start > timeout_s:
                print(f"[wait_for_db] Timed out waiting for DB. Last error: {e}")
                raise
            time.sleep(1)


for _url in dict.fromkeys([DATABASE_URL, os.getenv("BILLING_DATABASE_URL") or DATABASE_URL]):
    wait_for(_url)
