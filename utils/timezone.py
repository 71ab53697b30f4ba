#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Centralized timezone handling for the organization's local clock
"""
import os
from datetime import datetime, timezone, timedelta

APP_TZ = timezone(timedelta(minutes=int(os.environ.get('APP_UTC_OFFSET_MINUTES', '0') or 0)))


def configure_offset(minutes):
    """Reset the local offset (called once from create_app)"""
    global APP_TZ
    APP_TZ = timezone(timedelta(minutes=int(minutes or 0)))
    return APP_TZ


def get_local_now():
    """Get current datetime in the organization's timezone"""
    return datetime.now(APP_TZ)


def get_local_today():
    """Get current date in the organization's timezone"""
    return get_local_now().date()


def utc_now():
    """Naive UTC timestamp, matching what the models store"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def day_of_week(value=None):
    """
    Day index used by daily threshold settings: 0 = Sunday ... 6 = Saturday.
    Python's weekday() starts on Monday, so shift by one.
    """
    if value is None:
        value = get_local_today()
    return (value.weekday() + 1) % 7
