#!/usr/bin/env python
#
# Copyright 2009 Google Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#

"""Events delivered to application code, and the registry that routes them."""

import logging
import threading

import feedparser


class Publish(object):
  """Content a hub distributed for one of our subscriptions."""

  def __init__(self, subscription, content_type, data):
    self.subscription = subscription
    self.content_type = content_type
    self.data = data

  def parse_feed(self):
    """Parses the payload as a feed.

    Returns:
      The feedparser result. Check its 'bozo' flag for parse problems; the
      payload itself is never validated before delivery.
    """
    data = feedparser.parse(self.data)
    if data.bozo:
      logging.debug('Bozo feed data for topic = %s: %r',
                    self.subscription.topic, data.bozo_exception)
    return data


class SubscriptionDenied(object):
  """A hub refused one of our pending subscriptions."""

  def __init__(self, subscription, reason):
    self.subscription = subscription
    self.reason = reason


class InvalidHandlerError(Exception):
  """Raised when a handler is not callable."""


class EventRegistry(object):
  """Routes events to the handlers registered for their class."""

  def __init__(self):
    self._lock = threading.Lock()
    self._handlers = {}

  def on(self, event_class, func):
    """Registers func(event) to be called for every event_class event."""
    if not callable(func):
      raise InvalidHandlerError('Handler %r is not callable' % (func,))
    with self._lock:
      self._handlers.setdefault(event_class, []).append(func)

  def remove(self, event_class, func):
    with self._lock:
      handlers = self._handlers.get(event_class, [])
      if func in handlers:
        handlers.remove(func)

  def call(self, event):
    """Calls each handler registered for the event's class, in order.

    Returns:
      The number of handlers called.
    """
    with self._lock:
      handlers = list(self._handlers.get(type(event), []))
    if not handlers:
      logging.debug('No handlers registered for %s', type(event).__name__)
    for func in handlers:
      func(event)
    return len(handlers)
