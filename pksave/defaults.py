""" pksave.defaults - logic for finding default paths """

import os

PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


def get_default_db_uri_with_origin():
    uri = os.environ.get('PKSAVE_DB_ENGINE', None)
    origin = 'environment'

    if uri is None:
        sqlite_path = os.path.join(PACKAGE_DIR, 'data', 'pksave.sqlite')
        uri = 'sqlite:///' + sqlite_path
        origin = 'default'

    return uri, origin

def get_default_csv_dir_with_origin():
    csv_dir = os.environ.get('PKSAVE_CSV_DIR', None)
    origin = 'environment'

    if csv_dir is None:
        csv_dir = os.path.join(PACKAGE_DIR, 'data', 'csv')
        origin = 'default'

    return csv_dir, origin


def get_default_db_uri():
    return get_default_db_uri_with_origin()[0]

def get_default_csv_dir():
    return get_default_csv_dir_with_origin()[0]
