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

"""Discovery of a topic's hub URL and canonical self URL.

Three places are looked at, in this order:

* Link response headers (RFC 8288). When they name both a hub and a self
  link the body is never read.
* The body of XML feeds (RSS, RDF or Atom), parsed as a stream.
* The body of HTML pages, looking at <link> elements.
"""

import html.parser
import logging
import urllib.parse

import requests

from pubsubhubbub_subscribe import errors
from pubsubhubbub_subscribe import feed_links


# Default timeout for discovery fetches, in seconds.
FETCH_TIMEOUT = 30

# Size of the chunks handed to the streaming feed parser.
CHUNK_SIZE = 8192

FEED = 'feed'
HTML = 'html'

CONTENT_TYPES = {
  'text/xml': FEED,
  'application/xml': FEED,
  'application/rss+xml': FEED,
  'application/atom+xml': FEED,
  'application/rdf+xml': FEED,
  'text/html': HTML,
  'application/xhtml+xml': HTML,
}


def media_type(content_type):
  """Returns the lower-cased media type of a Content-Type header value."""
  return (content_type or '').split(';', 1)[0].strip().lower()


def content_charset(content_type):
  """Returns the charset parameter of a Content-Type header value, or None."""
  for param in (content_type or '').split(';')[1:]:
    name, _, value = param.partition('=')
    if name.strip().lower() == 'charset':
      return value.strip().strip('"\'') or None
  return None


def parse_link_header(value):
  """Parses a Link header value into a list of (url, rels) tuples.

  Args:
    value: The header value. Repeated Link headers may be joined with commas.

  Returns:
    List of (url, rels) tuples in header order, where rels is a list of the
    lower-cased relation types of that link.
  """
  links = []
  if not value:
    return links
  for link in requests.utils.parse_header_links(value):
    url = link.get('url')
    if not url:
      continue
    links.append((url, link.get('rel', '').lower().split()))
  return links


def find_rel(links, rel):
  """Returns the URL of the first (url, rels) link with the given relation."""
  for url, rels in links:
    if rel in rels:
      return url
  return None


def extract_link_header(value):
  """Extracts the self and hub URLs from a Link header value.

  Returns:
    Tuple (self_url, hub_url); both are None unless both links are present.
  """
  links = parse_link_header(value)
  self_url = find_rel(links, 'self')
  hub_url = find_rel(links, 'hub')
  if not self_url or not hub_url:
    return None, None
  return self_url, hub_url


class HtmlLinksParser(html.parser.HTMLParser):
  """HTML parser that collects every <link> element's relations and href.

  Links will be placed in the 'links' attribute's list as (href, rels)
  tuples, in document order.
  """

  def reset(self):
    html.parser.HTMLParser.reset(self)
    self.links = []

  def handle_starttag(self, tag, attrs):
    if tag != 'link':
      return
    attr_dict = dict(attrs)
    rels = (attr_dict.get('rel') or '').lower().split()
    self.links.append((attr_dict.get('href') or '', rels))


def extract_html_links(text):
  """Extracts the self and hub URLs from an HTML document.

  Args:
    text: The decoded HTML document.

  Returns:
    Tuple (self_url, hub_url).

  Raises:
    NoSelfError if no link has rel=self.
    NoHubError if no link has rel=hub.
  """
  parser = HtmlLinksParser()
  parser.feed(text)
  parser.close()

  self_links = [href for href, rels in parser.links if 'self' in rels]
  if not self_links:
    raise errors.NoSelfError('self link not found')

  hub_links = [href for href, rels in parser.links if 'hub' in rels]
  if not hub_links:
    raise errors.NoHubError('hub not found')

  return self_links[0], hub_links[0]


def _extract_from_feed(response):
  self_url, hub_url = feed_links.extract_feed_links(
      response.iter_content(CHUNK_SIZE),
      encoding=content_charset(response.headers.get('content-type')))
  if not self_url:
    raise errors.NoSelfError('self link not found')
  if not hub_url:
    raise errors.NoHubError('hub not found')
  return self_url, hub_url


def _extract_from_html(response):
  if 'charset' not in response.headers.get('content-type', '').lower():
    # No declared charset; requests sniffs it from the body.
    response.encoding = None
  return extract_html_links(response.text)


_EXTRACTORS = {
  FEED: _extract_from_feed,
  HTML: _extract_from_html,
}


def discover(topic_url, session=None, timeout=FETCH_TIMEOUT, headers=None):
  """Discovers the hub and canonical self URLs for a topic.

  Args:
    topic_url: The topic to do discovery on.
    session: requests.Session (or the requests module) to fetch with.
    timeout: Timeout for the fetch, in seconds.
    headers: Extra request headers, if any.

  Returns:
    Tuple (self_url, hub_url). Relative links are resolved against the URL
    the document was finally fetched from.

  Raises:
    FetchError if the topic could not be fetched.
    NoHubError, NoSelfError, UnexpectedFeedTypeError, ChannelNotFoundError or
    FeedParseError if the links could not be found.
  """
  if session is None:
    session = requests
  try:
    response = session.get(topic_url, timeout=timeout, headers=headers,
                           stream=True)
  except requests.RequestException as e:
    logging.exception('Error fetching for discovery topic URL=%s', topic_url)
    raise errors.FetchError('Error fetching content for discovery: %s' % e)

  with response:
    if not 200 <= response.status_code < 300:
      logging.error('Discovery status_code=%s for topic URL=%s',
                    response.status_code, topic_url)
      raise errors.FetchError(
          'Discovery fetch received status code %s' % response.status_code,
          status_code=response.status_code)

    base_url = response.url or topic_url
    self_url, hub_url = extract_link_header(response.headers.get('link'))
    if self_url and hub_url:
      logging.debug('Found Link headers for topic URL=%s: self=%s, hub=%s',
                    topic_url, self_url, hub_url)
    else:
      content_type = media_type(response.headers.get('content-type'))
      extractor = _EXTRACTORS.get(CONTENT_TYPES.get(content_type))
      if extractor is None:
        logging.debug('Topic URL=%s has content-type %r; no hub to find',
                      topic_url, content_type)
        raise errors.NoHubError('hub not found')
      try:
        self_url, hub_url = extractor(response)
      except requests.RequestException as e:
        logging.exception('Error reading body for topic URL=%s', topic_url)
        raise errors.FetchError('Error reading content for discovery: %s' % e)
      logging.debug('Found %s links for topic URL=%s: self=%s, hub=%s',
                    content_type, topic_url, self_url, hub_url)

  return (urllib.parse.urljoin(base_url, self_url),
          urllib.parse.urljoin(base_url, hub_url))


__all__ = ['discover', 'extract_link_header', 'extract_html_links',
           'parse_link_header', 'media_type', 'content_charset']
