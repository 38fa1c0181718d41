import os

from .base import *  # noqa: F401,F403

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DEBUG = False

WORKER_LOCK_BACKEND = os.getenv("WORKER_LOCK_BACKEND", "mysql")
