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

"""Tests for the intents module."""

import threading
import unittest

from pubsubhubbub_subscribe import intents
from pubsubhubbub_subscribe import models


SUBSCRIBE = models.MODE_SUBSCRIBE
UNSUBSCRIBE = models.MODE_UNSUBSCRIBE


class PendingIntentTrackerTest(unittest.TestCase):
  """Tests for the PendingIntentTracker class."""

  def setUp(self):
    self.tracker = intents.PendingIntentTracker()
    self.topic = 'http://example.com/topic'
    self.callback = 'http://example.com/callback'
    self.sub = models.Subscription(self.topic, self.callback)

  def testAddAndPop(self):
    self.tracker.add(SUBSCRIBE, self.sub)
    self.assertTrue(self.tracker.is_pending(SUBSCRIBE, self.topic,
                                            self.callback))
    self.assertFalse(self.tracker.is_pending(UNSUBSCRIBE, self.topic,
                                             self.callback))
    sub = self.tracker.pop(SUBSCRIBE, self.topic, self.callback)
    self.assertEqual(self.sub, sub)
    self.assertTrue(
        self.tracker.pop(SUBSCRIBE, self.topic, self.callback) is None)
    self.assertEqual(0, len(self.tracker))

  def testDirectionsAreSeparate(self):
    self.tracker.add(SUBSCRIBE, self.sub)
    self.tracker.add(UNSUBSCRIBE, self.sub)
    self.assertEqual(2, len(self.tracker))
    self.assertTrue(
        self.tracker.pop(UNSUBSCRIBE, self.topic, self.callback) is not None)
    self.assertTrue(self.tracker.is_pending(SUBSCRIBE, self.topic,
                                            self.callback))

  def testAtMostOnePerKey(self):
    self.tracker.add(SUBSCRIBE, self.sub)
    replacement = models.Subscription(self.topic, self.callback, secret='new')
    self.tracker.add(SUBSCRIBE, replacement)
    self.assertEqual(1, len(self.tracker))
    self.assertEqual('new', self.tracker.pop(
        SUBSCRIBE, self.topic, self.callback).secret)

  def testPopByTopicPrefersExactCallback(self):
    other = models.Subscription(self.topic, 'http://example.com/other')
    self.tracker.add(UNSUBSCRIBE, other)
    self.tracker.add(UNSUBSCRIBE, self.sub)
    sub = self.tracker.pop_by_topic(UNSUBSCRIBE, self.topic, self.callback)
    self.assertEqual(self.callback, sub.callback)
    self.assertEqual(1, len(self.tracker))

  def testPopByTopicIgnoresCallback(self):
    self.tracker.add(UNSUBSCRIBE, self.sub)
    sub = self.tracker.pop_by_topic(UNSUBSCRIBE, self.topic,
                                    'http://example.com/elsewhere')
    self.assertEqual(self.sub, sub)
    self.assertTrue(self.tracker.pop_by_topic(UNSUBSCRIBE, self.topic) is None)

  def testPopByTopicDirection(self):
    self.tracker.add(SUBSCRIBE, self.sub)
    self.assertTrue(self.tracker.pop_by_topic(UNSUBSCRIBE, self.topic) is None)
    self.assertEqual(1, len(self.tracker))

  def testPending(self):
    self.tracker.add(SUBSCRIBE, self.sub)
    self.tracker.add(UNSUBSCRIBE,
                     models.Subscription('http://example.com/t2', self.callback))
    self.assertEqual(2, len(self.tracker.pending()))
    self.assertEqual([self.topic],
                     [sub.topic for sub in self.tracker.pending(SUBSCRIBE)])

  def testHoldsCopies(self):
    self.tracker.add(SUBSCRIBE, self.sub)
    self.sub.secret = 'changed'
    self.assertTrue(self.tracker.pop(
        SUBSCRIBE, self.topic, self.callback).secret is None)

  def testBadDirection(self):
    self.assertRaises(ValueError, self.tracker.add, models.MODE_DENIED,
                      self.sub)
    self.assertRaises(ValueError, self.tracker.pop, 'bogus', self.topic,
                      self.callback)

  def testConcurrentAccess(self):
    def churn(n):
      for i in range(200):
        sub = models.Subscription('http://t%d/%d' % (n, i), self.callback)
        self.tracker.add(SUBSCRIBE, sub)
        if i % 2:
          self.tracker.pop(SUBSCRIBE, sub.topic, sub.callback)
    threads = [threading.Thread(target=churn, args=(n,)) for n in range(5)]
    for thread in threads:
      thread.start()
    for thread in threads:
      thread.join()
    self.assertEqual(500, len(self.tracker))


if __name__ == '__main__':
  unittest.main()
