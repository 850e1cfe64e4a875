# Celery instance is defined in bk_project/celery.py
# celery_app becomes the task queue app for the whole project
from .celery import celery_app

# 'from bk_project import *' only exports celery_app
__all__ = ("celery_app",)

""" Run workers with "celery -A bk_project worker -l info"
    and the scheduler with "celery -A bk_project beat -l info" """
