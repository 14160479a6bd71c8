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

"""Utilities common to all tests."""

import io
import logging
import os
import urllib.parse

import requests
import requests.adapters
import requests.structures
import webob


TESTDATA = os.path.join(os.path.dirname(__file__), 'testdata')


def load(path):
  """Returns the bytes of a file in the testdata directory."""
  with open(os.path.join(TESTDATA, path), 'rb') as f:
    return f.read()


class HttpTestStub(requests.adapters.BaseAdapter):
  """requests transport adapter that serves expected responses.

  Mount it on a requests.Session to mock calls and test inputs.
  """

  def __init__(self):
    """Initializer."""
    super(HttpTestStub, self).__init__()
    # Maps (method, url) keys to (request_payload, request_headers,
    # response_code, response_data, response_headers, error_instance)
    self._expectations = {}
    self.requests = []

  def clear(self):
    """Clears all expectations on this stub."""
    self._expectations.clear()
    del self.requests[:]

  def expect(self, method, url, response_code, response_data=b'',
             response_headers=None, request_payload=None, request_headers=None,
             connection_error=False, timeout_error=False):
    """Expects a certain request and response.

    Overrides any existing expectation for the same method and URL.

    Args:
      method: The expected method.
      url: The expected URL to access.
      response_code: The expected response code.
      response_data: The response data, as bytes or str.
      response_headers: Headers to serve back, if any. A list of (name, value)
        tuples may be given to repeat a header.
      request_payload: The expected request payload, if any.
      request_headers: Any expected request headers.
      connection_error: Set to True if this call should raise a
        requests.ConnectionError exception when made.
      timeout_error: Set to True if this call should raise a
        requests.Timeout exception when made.
    """
    error_instance = None
    if connection_error:
      error_instance = requests.ConnectionError('mock error')
    elif timeout_error:
      error_instance = requests.Timeout('mock error')

    if isinstance(response_data, str):
      response_data = response_data.encode('utf-8')

    self._expectations[(method.lower(), url)] = (
        request_payload, request_headers, response_code,
        response_data, response_headers, error_instance)

  def verify_and_reset(self):
    """Verify that all expectations have been met and clear any remaining."""
    old_expectations = self._expectations
    self._expectations = {}
    if old_expectations:
      assert False, '%d expectations remain: %r' % (
          len(old_expectations), old_expectations)

  def send(self, request, stream=False, timeout=None, verify=True, cert=None,
           proxies=None):
    logging.info('Received HTTP request:\n%s %r\nHeaders: %r\nPayload: %r',
                 request.method, request.url, dict(request.headers),
                 request.body)
    self.requests.append(request)

    key = (request.method.lower(), request.url)
    expected = self._expectations.pop(key, None)
    assert expected is not None, 'Did not expect: %s %s' % key

    (request_payload, request_headers, response_code,
     response_data, response_headers, error_instance) = expected

    if request_payload is not None:
      assert request.body == request_payload, (
        'Request payload: "%s" did not match expected: "%s"' %
        (request.body, request_payload))
    if request_headers:
      for name, value in request_headers.items():
        found = request.headers.get(name)
        assert found == value, ('Value for request header %s was '
            '"%s", expected "%s"' % (name, found, value))
    if error_instance is not None:
      raise error_instance

    response = requests.Response()
    response.status_code = response_code
    response.url = request.url
    response.request = request
    response.raw = io.BytesIO(response_data)
    response.headers = requests.structures.CaseInsensitiveDict()
    if response_headers:
      if hasattr(response_headers, 'items'):
        response_headers = response_headers.items()
      for name, value in response_headers:
        if name in response.headers:
          response.headers[name] += ', ' + value
        else:
          response.headers[name] = value
    response.encoding = requests.utils.get_encoding_from_headers(
        response.headers)
    return response

  def close(self):
    pass


def create_session():
  """Returns (session, stub) with the stub mounted for http and https."""
  stub = HttpTestStub()
  session = requests.Session()
  session.mount('http://', stub)
  session.mount('https://', stub)
  return session, stub


def parse_form(body):
  """Returns a dict of the parameters in a form-encoded request body."""
  if isinstance(body, bytes):
    body = body.decode('utf-8')
  return dict(urllib.parse.parse_qsl(body, keep_blank_values=True))


def create_test_request(method, url, body=None, headers=None, *params):
  """Creates a webob.Request object for use in testing.

  Args:
    method: Method to use for the test.
    url: Full URL the request is made to; params are added to its query.
    body: The body to use for the request, as bytes.
    headers: Dictionary of request headers, if any.
    *params: List of (key, value) tuples to put in the query string.

  Returns:
    A new webob.Request object for testing.
  """
  if params:
    separator = '&' if '?' in url else '?'
    url += separator + urllib.parse.urlencode(params)
  request = webob.Request.blank(url, method=method.upper(), headers=headers)
  if body is not None:
    request.body = body
  return request
