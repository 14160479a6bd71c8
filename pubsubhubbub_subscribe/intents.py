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

"""Registry of subscribe and unsubscribe requests awaiting hub verification.

Pending intents only live in process memory: a restart forgets every request
that has been sent but not yet verified.
"""

import logging
import threading

from pubsubhubbub_subscribe import models


DIRECTIONS = frozenset([
  models.MODE_SUBSCRIBE,
  models.MODE_UNSUBSCRIBE,
])


class PendingIntentTracker(object):
  """Thread-safe map of (direction, topic, callback) to Subscription."""

  def __init__(self):
    self._lock = threading.Lock()
    self._pending = {}

  @staticmethod
  def _check_direction(direction):
    if direction not in DIRECTIONS:
      raise ValueError('Invalid intent direction: %s' % direction)

  def add(self, direction, sub):
    """Registers a request that was sent to a hub.

    Replaces any intent already pending for the same direction, topic and
    callback.

    Args:
      direction: models.MODE_SUBSCRIBE or models.MODE_UNSUBSCRIBE.
      sub: The Subscription the request was made for.
    """
    self._check_direction(direction)
    key = (direction, sub.topic, sub.callback)
    with self._lock:
      if key in self._pending:
        logging.debug('Replacing pending %s for topic = %s, callback = %s',
                      direction, sub.topic, sub.callback)
      self._pending[key] = sub.copy()

  def pop(self, direction, topic, callback):
    """Removes and returns the pending Subscription, or None if not pending."""
    self._check_direction(direction)
    with self._lock:
      return self._pending.pop((direction, topic, callback), None)

  def pop_by_topic(self, direction, topic, callback=None):
    """Removes and returns a pending Subscription matched on topic.

    An intent for exactly (topic, callback) is preferred; otherwise the first
    intent found for the topic is used, whatever its callback.

    Returns:
      The Subscription, or None if nothing is pending for the topic.
    """
    self._check_direction(direction)
    with self._lock:
      sub = self._pending.pop((direction, topic, callback), None)
      if sub is not None:
        return sub
      for key in self._pending:
        if key[0] == direction and key[1] == topic:
          return self._pending.pop(key)
    return None

  def is_pending(self, direction, topic, callback):
    with self._lock:
      return (direction, topic, callback) in self._pending

  def pending(self, direction=None):
    """Returns a list of pending Subscriptions, optionally for one direction."""
    with self._lock:
      return [sub.copy() for key, sub in self._pending.items()
              if direction is None or key[0] == direction]

  def __len__(self):
    with self._lock:
      return len(self._pending)
