"""Password hashing (bcrypt) off the event loop."""
from __future__ import annotations

import bcrypt
from starlette.concurrency import run_in_threadpool

# bcrypt only looks at the first 72 bytes; longer input is rejected upstream
MAX_PASSWORD_BYTES = 72


def _hash(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def _check(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode(), password_hash.encode())


async def hash_password(password: str, rounds: int = 10) -> str:
    return await run_in_threadpool(_hash, password, rounds)


async def verify_password(password: str, password_hash: str) -> bool:
    return await run_in_threadpool(_check, password, password_hash)
