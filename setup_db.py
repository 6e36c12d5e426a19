"""
Out-of-band database setup for Little Forest Nursery.

Tables are not created by the API process. This script reports which tables
the table API can see, prints the DDL to run against `DATABASE_URL`, seeds
admin users for the allow-listed addresses and rewrites legacy product
status spellings.

    python setup_db.py --print-sql
    python setup_db.py --seed-admins --password 'change-me'
    python setup_db.py --migrate-statuses
"""
import argparse
import asyncio
import logging
from typing import Dict, List, Optional, get_args

from config import Settings, settings
from database import ConstraintError, Database
from schemas import ProductStatus, normalize_product_status
from security import hash_password
from storage import Storage

logger = logging.getLogger("little_forest.setup")

DDL = {
    "profiles": """
CREATE TABLE IF NOT EXISTS profiles (
  id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
  email TEXT UNIQUE NOT NULL,
  full_name TEXT,
  role TEXT DEFAULT 'user',
  created_at TIMESTAMPTZ DEFAULT NOW(),
  updated_at TIMESTAMPTZ DEFAULT NOW()
);""",
    "products": """
CREATE TABLE IF NOT EXISTS products (
  id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
  name TEXT NOT NULL,
  category TEXT NOT NULL,
  price TEXT NOT NULL,
  description TEXT,
  image_url TEXT,
  status TEXT DEFAULT 'active',
  featured BOOLEAN DEFAULT FALSE,
  stock_quantity INTEGER DEFAULT 0,
  created_at TIMESTAMPTZ DEFAULT NOW(),
  updated_at TIMESTAMPTZ DEFAULT NOW()
);""",
    "content": """
CREATE TABLE IF NOT EXISTS content (
  id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
  title TEXT NOT NULL,
  content TEXT NOT NULL,
  type TEXT NOT NULL,
  status TEXT DEFAULT 'draft',
  created_by UUID,
  created_at TIMESTAMPTZ DEFAULT NOW(),
  updated_at TIMESTAMPTZ DEFAULT NOW()
);""",
    "contact_messages": """
CREATE TABLE IF NOT EXISTS contact_messages (
  id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
  name TEXT NOT NULL,
  email TEXT NOT NULL,
  phone TEXT,
  message TEXT NOT NULL,
  status TEXT DEFAULT 'new',
  created_at TIMESTAMPTZ DEFAULT NOW()
);""",
    "testimonials": """
CREATE TABLE IF NOT EXISTS testimonials (
  id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
  name TEXT NOT NULL,
  location TEXT NOT NULL,
  text TEXT NOT NULL,
  project TEXT,
  rating INTEGER,
  created_at TIMESTAMPTZ DEFAULT NOW(),
  updated_at TIMESTAMPTZ DEFAULT NOW()
);""",
    "admin_users": """
CREATE TABLE IF NOT EXISTS admin_users (
  id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
  email TEXT UNIQUE NOT NULL,
  password_hash TEXT NOT NULL,
  created_at TIMESTAMPTZ DEFAULT NOW(),
  updated_at TIMESTAMPTZ DEFAULT NOW()
);
ALTER TABLE admin_users ENABLE ROW LEVEL SECURITY;
CREATE POLICY "Service role access" ON admin_users FOR ALL USING (auth.role() = 'service_role');""",
}


def schema_sql() -> str:
    return "\n".join(DDL[t].strip() + "\n" for t in DDL)


async def probe_tables(storage: Storage) -> Dict[str, bool]:
    return {table: await storage.db.probe(table) for table in DDL}


async def seed_admins(storage: Storage, emails: List[str], password: str) -> List[str]:
    """Create an admin row for each address that has none; return the created addresses."""
    if not password:
        raise ValueError("A password is required to seed admin users")
    hashed = hash_password(password)
    created = []
    for email in sorted(emails):
        if await storage.admin_users.get_by_email(email) is not None:
            logger.info("Admin user already exists: %s", email)
            continue
        try:
            await storage.admin_users.create({"email": email, "password_hash": hashed})
        except ConstraintError as e:
            logger.error("Could not create admin user %s: %s", email, e)
            continue
        logger.info("Admin user created: %s", email)
        created.append(email)
    return created


async def migrate_product_statuses(storage: Storage) -> int:
    """Rewrite non-canonical product statuses in place; return the number of rows changed."""
    changed = 0
    for row in await storage.db["products"].select():
        current = row.get("status")
        canonical = normalize_product_status(current)
        if current is None or canonical == current:
            continue
        if canonical not in get_args(ProductStatus):
            logger.warning("Product %s has unknown status %r, left as is", row["id"], current)
            continue
        await storage.db["products"].update({"id": row["id"]}, {"status": canonical})
        logger.info("Product %s status %r -> %r", row["id"], current, canonical)
        changed += 1
    return changed


async def run(args: argparse.Namespace, config: Settings, storage: Optional[Storage] = None) -> int:
    own = storage is None
    if own:
        storage = Storage(Database(config))
    try:
        tables = await probe_tables(storage)
        for table, ok in tables.items():
            logger.info("%s table %s", "✓" if ok else "✗", table)
        missing = [t for t, ok in tables.items() if not ok]
        if missing:
            logger.warning("Missing tables: %s. Run `python setup_db.py --print-sql` and apply it to "
                           "DATABASE_URL or the dashboard SQL editor.", ", ".join(missing))

        if args.seed_admins:
            if "admin_users" in missing:
                logger.error("Cannot seed admins: admin_users table does not exist")
                return 1
            created = await seed_admins(storage, sorted(config.admin_emails),
                                        args.password or config.ADMIN_DEFAULT_PASSWORD)
            logger.info("Seeded %d admin user(s)", len(created))

        if args.migrate_statuses:
            if "products" in missing:
                logger.error("Cannot migrate statuses: products table does not exist")
                return 1
            logger.info("Migrated %d product status value(s)", await migrate_product_statuses(storage))
        return 0
    finally:
        if own:
            await storage.db.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Little Forest database setup")
    parser.add_argument("--print-sql", action="store_true", help="print CREATE TABLE statements and exit")
    parser.add_argument("--seed-admins", action="store_true", help="create admin users for ADMIN_EMAILS")
    parser.add_argument("--password", help="password for seeded admins (default ADMIN_DEFAULT_PASSWORD)")
    parser.add_argument("--migrate-statuses", action="store_true", help="normalize legacy product statuses")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.print_sql:
        print(schema_sql())
        return 0
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(levelname)s %(message)s")
    try:
        return asyncio.run(run(args, settings))
    except ValueError as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
