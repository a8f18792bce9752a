# SPDX-License-Identifier: GPL-2.0-or-later

from prometheus_client import start_http_server, Counter, Gauge

DEFAULT_PORT = 9030

scheduler_queue_size = Gauge(
    'ladder_scheduler_queue_size',
    'Number of matchups waiting to be played')

scheduler_matches_total = Counter(
    'ladder_scheduler_matches_total',
    'Number of matchups processed, by outcome',
    ['status'])

scheduler_archive_errors = Counter(
    'ladder_scheduler_archive_errors_total',
    'Number of match directories that could not be archived')

scheduler_exception = Counter(
    'ladder_scheduler_exception_total',
    'Number of unexpected exceptions while running a matchup')


def monitoring_start(port=DEFAULT_PORT):
    start_http_server(port)
