#!/usr/bin/env python3
"""Print the database URL the app will use, with the password replaced by '***'.

Lets you confirm which host/user/database is configured without exposing secrets.
"""
from verifiedonchain.config.settings import Settings
from verifiedonchain.db.database import mask_db_url


def main():
    print(mask_db_url(Settings.from_env().DATABASE_URL))


if __name__ == '__main__':
    main()
