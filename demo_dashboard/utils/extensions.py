from flask import current_app

EXTENSION_KEY = "demo_dashboard"


def init_clients(app, **clients):
    app.extensions[EXTENSION_KEY] = clients


def _client(name):
    return current_app.extensions[EXTENSION_KEY][name]


def get_dropbox():
    return _client("dropbox")


def get_cache():
    return _client("cache")


def get_mailer():
    return _client("mailer")


def get_identity():
    return _client("identity")
