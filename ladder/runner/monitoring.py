# SPDX-License-Identifier: GPL-2.0-or-later

from prometheus_client import Counter, Gauge, Summary

runner_match_duration = Summary(
    'ladder_runner_match_duration_seconds',
    'Summary of match sessions, from launch to teardown')

runner_results = Counter(
    'ladder_runner_results_total',
    'Number of matches by result',
    ['result'])

runner_launch_errors = Counter(
    'ladder_runner_launch_errors_total',
    'Number of bots that could not be started')

runner_bot_kills = Counter(
    'ladder_runner_bot_kills_total',
    'Number of bot processes killed while still running')

runner_sessions = Gauge(
    'ladder_runner_sessions',
    'Number of match sessions in progress')
