"""Print the profile count and the newest few usernames using the configured database."""
import logging
import sys

from sqlalchemy import text

from verifiedonchain.db.database import DatabaseConfig

logging.basicConfig(level=logging.INFO)

def main():
    try:
        engine = DatabaseConfig().initialize_engine()
        with engine.connect() as conn:
            cnt = conn.execute(text('SELECT COUNT(*) FROM profiles')).fetchone()[0]
            print(f"profiles: {cnt}")
            rows = conn.execute(text('SELECT username, chain FROM profiles ORDER BY created_at DESC LIMIT 5'))
            for username, chain in rows:
                print(f"  {username} ({chain})")
    except Exception as e:
        print('Database query failed:', e)
        sys.exit(3)

if __name__ == '__main__':
    main()
