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

from setuptools import setup


LONG_DESC = (
    'A subscriber client for PubSubHubbub (WebSub), the simple, open, '
    'server-to-server web-hook-based pubsub (publish/subscribe) protocol. '
    'It discovers the hub of a topic, asks the hub for a subscription, '
    'answers the hub\'s intent verification and authenticates the content '
    'the hub delivers to the callback URL.')

setup(name='PubSubHubbub_Subscriber',
      version='1.0',
      description='Subscriber client for PubSubHubbub',
      long_description=LONG_DESC,
      url='https://github.com/pubsubhubbub/PubSubHubbub',
      packages=['pubsubhubbub_subscribe'],
      package_data={'pubsubhubbub_subscribe': ['testdata/*']},
      python_requires='>=3.8',
      install_requires=[
          'requests',
          'WebOb',
          'feedparser',
      ],
      extras_require={
          'test': ['pytest'],
      },
      license="Apache 2.0")
