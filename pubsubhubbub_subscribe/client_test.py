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

"""Tests for the client module."""

import datetime
import hashlib
import hmac
import logging
logging.basicConfig(format='%(levelname)-8s %(filename)s] %(message)s')
import unittest

from pubsubhubbub_subscribe import client
from pubsubhubbub_subscribe import errors
from pubsubhubbub_subscribe import events
from pubsubhubbub_subscribe import models
from pubsubhubbub_subscribe import testutil


TOPIC = 'http://example.com/topic'
HUB = 'http://hub.example.com/'
BASE = 'http://example.com/websub'
NOW = datetime.datetime(2009, 9, 1, 12, 0, 0)


class ClientTestBase(unittest.TestCase):

  def setUp(self):
    self.session, self.stub = testutil.create_session()
    self.client = client.Client(BASE, session=self.session, now=lambda: NOW)
    self.callback = BASE + '/' + models.callback_path(TOPIC)

  def tearDown(self):
    self.stub.verify_and_reset()

  def sent_form(self, index=-1):
    return testutil.parse_form(self.stub.requests[index].body)

  def hub_request(self, url, *params):
    request = testutil.create_test_request('GET', url, None, None, *params)
    return request.get_response(self.client)


class SubscribeTest(ClientTestBase):
  """Tests for sending subscribe requests."""

  def testExplicitHub(self):
    self.stub.expect('post', HUB, 202)
    sub = self.client.subscribe(TOPIC, hub=HUB, secret='shh',
                                lease_seconds=3600)
    self.assertEqual({
        'hub.mode': 'subscribe',
        'hub.topic': TOPIC,
        'hub.callback': self.callback,
        'hub.secret': 'shh',
        'hub.lease_seconds': '3600',
      }, self.sent_form())
    self.assertEqual(models.FORM_CONTENT_TYPE,
                     self.stub.requests[0].headers['Content-Type'])
    self.assertEqual(TOPIC, sub.topic)
    self.assertEqual(self.callback, sub.callback)
    self.assertFalse(sub.verified)
    self.assertTrue(self.client.intents.is_pending(
        models.MODE_SUBSCRIBE, TOPIC, self.callback))
    self.assertEqual('shh', self.client.store.get(TOPIC, self.callback).secret)

  def testDefaultLease(self):
    for lease_seconds in (None, 0, -5):
      self.stub.expect('post', HUB, 202)
      self.client.subscribe(TOPIC, hub=HUB, lease_seconds=lease_seconds)
      form = self.sent_form()
      self.assertEqual(str(client.DEFAULT_LEASE_SECONDS),
                       form['hub.lease_seconds'])
      self.assertFalse('hub.secret' in form)

  def testClientLease(self):
    self.client = client.Client(BASE, session=self.session, lease_seconds=60)
    self.stub.expect('post', HUB, 202)
    self.client.subscribe(TOPIC, hub=HUB)
    self.assertEqual('60', self.sent_form()['hub.lease_seconds'])

  def testDiscovery(self):
    self.stub.expect('get', TOPIC, 200, testutil.load('atom.xml'),
                     response_headers={'Content-Type': 'application/atom+xml'})
    self.stub.expect('post', 'http://hub.example.com/atom', 202)
    sub = self.client.subscribe(TOPIC)
    self.assertEqual('http://example.com/atom.xml', sub.topic)
    self.assertEqual(
        BASE + '/' + models.callback_path('http://example.com/atom.xml'),
        sub.callback)
    self.assertEqual('http://example.com/atom.xml',
                     self.sent_form()['hub.topic'])

  def testDiscoveryFails(self):
    self.stub.expect('get', TOPIC, 200, b'<html></html>',
                     response_headers={'Content-Type': 'text/html'})
    self.assertRaises(errors.NoSelfError, self.client.subscribe, TOPIC)
    self.assertEqual(0, len(self.client.store))
    self.assertEqual(0, len(self.client.intents))

  def testExplicitCallback(self):
    callback = 'http://example.com/my/callback'
    self.stub.expect('post', HUB, 202)
    sub = self.client.subscribe(TOPIC, hub=HUB, callback=callback)
    self.assertEqual(callback, sub.callback)
    self.assertEqual(callback, self.sent_form()['hub.callback'])

  def testExplicitCallbackSetsBase(self):
    self.client = client.Client(session=self.session)
    self.assertEqual('', self.client.callback_for(TOPIC))
    self.stub.expect('post', HUB, 202)
    self.client.subscribe(TOPIC, hub=HUB,
                          callback='https://callbacks.example.com:8443/cb/1')
    self.assertEqual('https://callbacks.example.com:8443',
                     self.client.callback_base)
    self.assertEqual('https://callbacks.example.com:8443',
                     self.client.application.callback_base)

  def testNoCallback(self):
    self.client = client.Client(session=self.session)
    try:
      self.client.subscribe(TOPIC, hub=HUB)
    except errors.InvalidRequestError as e:
      self.assertTrue('hub.callback' in str(e))
    else:
      self.fail('InvalidRequestError not raised')
    self.assertEqual([], self.stub.requests)

  def testInvalidTopic(self):
    self.assertRaises(errors.InvalidRequestError, self.client.subscribe,
                      'ftp://example.com/feed', hub=HUB)
    self.assertEqual([], self.stub.requests)
    self.assertEqual(0, len(self.client.store))

  def testUnexpectedResponse(self):
    self.stub.expect('post', HUB, 400, 'Invalid parameter: hub.topic')
    try:
      self.client.subscribe(TOPIC, hub=HUB)
    except errors.UnexpectedResponseError as e:
      self.assertEqual(400, e.status_code)
      self.assertEqual('Invalid parameter: hub.topic', e.body)
    else:
      self.fail('UnexpectedResponseError not raised')
    self.assertFalse(self.client.intents.is_pending(
        models.MODE_SUBSCRIBE, TOPIC, self.callback))

  def testNoContentIsUnexpected(self):
    self.stub.expect('post', HUB, 204)
    self.assertRaises(errors.UnexpectedResponseError, self.client.subscribe,
                      TOPIC, hub=HUB)

  def testConnectionError(self):
    self.stub.expect('post', HUB, 202, connection_error=True)
    self.assertRaises(errors.HubRequestError, self.client.subscribe,
                      TOPIC, hub=HUB)
    self.assertEqual(0, len(self.client.intents))

  def testTimeout(self):
    self.stub.expect('post', HUB, 202, timeout_error=True)
    self.assertRaises(errors.HubRequestError, self.client.subscribe,
                      TOPIC, hub=HUB)

  def testResubscribeUpdatesSecretOnVerify(self):
    self.stub.expect('post', HUB, 202)
    self.client.subscribe(TOPIC, hub=HUB, secret='old')
    self.stub.expect('post', HUB, 202)
    self.client.subscribe(TOPIC, hub=HUB, secret='new')
    self.assertEqual(1, len(self.client.store))
    self.assertEqual(1, len(self.client.intents))
    self.assertEqual('old', self.client.store.get(TOPIC, self.callback).secret)

    response = self.hub_request(
        self.callback,
        ('hub.mode', 'subscribe'), ('hub.topic', TOPIC),
        ('hub.challenge', 'abc'), ('hub.lease_seconds', '60'))
    self.assertEqual(200, response.status_int)
    self.assertEqual('new', self.client.store.get(TOPIC, self.callback).secret)

  def testRejectedResubscribeKeepsSecret(self):
    self.stub.expect('post', HUB, 202)
    self.client.subscribe(TOPIC, hub=HUB, secret='old')
    response = self.hub_request(
        self.callback,
        ('hub.mode', 'subscribe'), ('hub.topic', TOPIC),
        ('hub.challenge', 'abc'), ('hub.lease_seconds', '60'))
    self.assertEqual(200, response.status_int)

    self.stub.expect('post', HUB, 500, 'Oops')
    self.assertRaises(errors.UnexpectedResponseError, self.client.subscribe,
                      TOPIC, hub=HUB, secret='new')
    sub = self.client.store.get(TOPIC, self.callback)
    self.assertEqual('old', sub.secret)
    self.assertTrue(sub.verified)

    body = b'<feed/>'
    signature = 'sha1=' + hmac.new(b'old', body, hashlib.sha1).hexdigest()
    request = testutil.create_test_request(
        'POST', self.callback, body,
        {'Content-Type': 'application/atom+xml',
         'X-Hub-Signature': signature})
    self.assertEqual(200, request.get_response(self.client).status_int)


class UnsubscribeTest(ClientTestBase):
  """Tests for sending unsubscribe requests."""

  def testNotFound(self):
    self.assertRaises(errors.NotFoundError, self.client.unsubscribe,
                      TOPIC, hub=HUB)
    self.assertEqual([], self.stub.requests)

  def testUnsubscribe(self):
    self.client.store.add(models.Subscription(TOPIC, self.callback))
    self.stub.expect('post', HUB, 202)
    self.client.unsubscribe(TOPIC, hub=HUB)
    self.assertEqual({
        'hub.mode': 'unsubscribe',
        'hub.topic': TOPIC,
        'hub.callback': self.callback,
      }, self.sent_form())
    self.assertTrue(self.client.intents.is_pending(
        models.MODE_UNSUBSCRIBE, TOPIC, self.callback))
    # Removed only once the hub verifies.
    self.assertTrue(self.client.store.get(TOPIC, self.callback) is not None)

  def testHubRejects(self):
    self.client.store.add(models.Subscription(TOPIC, self.callback))
    self.stub.expect('post', HUB, 500, 'Oops')
    self.assertRaises(errors.UnexpectedResponseError, self.client.unsubscribe,
                      TOPIC, hub=HUB)
    self.assertEqual(0, len(self.client.intents))
    self.assertTrue(self.client.store.get(TOPIC, self.callback) is not None)


class EndToEndTest(ClientTestBase):
  """Runs a subscription through verification, delivery and unsubscribe."""

  def testFlow(self):
    published = []
    self.client.on(events.Publish, published.append)

    self.stub.expect('post', HUB, 202)
    self.client.subscribe(TOPIC, hub=HUB, secret='shh', lease_seconds=600)

    response = self.hub_request(
        self.callback,
        ('hub.mode', 'subscribe'), ('hub.topic', TOPIC),
        ('hub.challenge', 'abc123'), ('hub.lease_seconds', '600'))
    self.assertEqual(200, response.status_int)
    self.assertEqual(b'abc123', response.body)
    sub = self.client.store.get(TOPIC, self.callback)
    self.assertEqual(600, sub.lease_seconds)
    self.assertEqual(NOW + datetime.timedelta(seconds=600),
                     sub.expiration_time)

    body = testutil.load('atom.xml')
    signature = 'sha256=' + hmac.new(b'shh', body, hashlib.sha256).hexdigest()
    request = testutil.create_test_request(
        'POST', self.callback, body,
        {'Content-Type': 'application/atom+xml',
         'X-Hub-Signature': signature})
    self.assertEqual(200, request.get_response(self.client).status_int)
    self.assertEqual(1, len(published))
    self.assertEqual(body, published[0].data)
    self.assertEqual('atom10', published[0].parse_feed().version)

    self.stub.expect('post', HUB, 202)
    self.client.unsubscribe(TOPIC, hub=HUB)
    response = self.hub_request(
        self.callback,
        ('hub.mode', 'unsubscribe'), ('hub.topic', TOPIC),
        ('hub.challenge', 'bye'))
    self.assertEqual(200, response.status_int)
    self.assertEqual(b'bye', response.body)
    self.assertTrue(self.client.store.get(TOPIC, self.callback) is None)

  def testDenied(self):
    denied = []
    self.client.on(events.SubscriptionDenied, denied.append)
    self.stub.expect('post', HUB, 202)
    self.client.subscribe(TOPIC, hub=HUB)
    response = self.hub_request(
        self.callback,
        ('hub.mode', 'denied'), ('hub.topic', TOPIC),
        ('hub.reason', 'not today'))
    self.assertEqual(500, response.status_int)
    self.assertEqual(b'', response.body)
    self.assertEqual(1, len(denied))
    self.assertEqual('not today', denied[0].reason)
    self.assertEqual(0, len(self.client.intents))


if __name__ == '__main__':
  unittest.main()
