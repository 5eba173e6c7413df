"""Shared Jinja2 templates instance for the travel map pages."""

import pathlib

import common.app

APP_DIR = pathlib.Path(__file__).resolve().parent

APP_TITLE = 'Susibert'

templates = common.app.make_templates(APP_DIR / 'templates', app_title=APP_TITLE)
