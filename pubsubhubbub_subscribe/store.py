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

"""Storage of subscription records, keyed by topic and callback."""

import threading

from pubsubhubbub_subscribe import models


class Store(object):
  """Interface for subscription storage.

  Implementations must be safe to call from several threads at once. No
  transaction spans more than one call.
  """

  def add(self, sub):
    """Inserts or replaces the Subscription for (sub.topic, sub.callback)."""
    raise NotImplementedError

  def get(self, topic, callback):
    """Returns the Subscription for a topic and callback, or None."""
    raise NotImplementedError

  def remove(self, sub):
    """Removes a Subscription.

    Returns:
      True if the subscription had previously existed, False otherwise.
    """
    raise NotImplementedError

  def for_callback(self, callback):
    """Returns the list of Subscriptions delivered to a callback URL."""
    raise NotImplementedError


class MemoryStore(Store):
  """Store that keeps subscriptions in process memory.

  Records are copied on the way in and out so callers never share state with
  the store.
  """

  def __init__(self):
    self._lock = threading.Lock()
    self._subscriptions = {}

  def add(self, sub):
    with self._lock:
      self._subscriptions[sub.key_name()] = sub.copy()

  def get(self, topic, callback):
    key_name = self._key_name(topic, callback)
    with self._lock:
      sub = self._subscriptions.get(key_name)
      return sub.copy() if sub is not None else None

  def remove(self, sub):
    with self._lock:
      return self._subscriptions.pop(sub.key_name(), None) is not None

  def for_callback(self, callback):
    with self._lock:
      return [sub.copy() for sub in self._subscriptions.values()
              if sub.callback == callback]

  def __len__(self):
    with self._lock:
      return len(self._subscriptions)

  @staticmethod
  def _key_name(topic, callback):
    return models.Subscription.create_key_name(callback, topic)
