# Copyright 2019 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Process-wide resources, created once and passed explicitly to callers."""

import collections

from google.cloud import firestore

from phishing_watch.config import load_config
from phishing_watch.senders import build_senders

AppContext = collections.namedtuple('AppContext', ['config', 'db', 'senders'])


def create_context(config=None, db=None, senders=None):
  """Assemble the context, creating the clients that were not supplied."""
  if config is None:
    config = load_config()
  if db is None:
    db = firestore.Client()
  if senders is None:
    senders = build_senders(config)
  return AppContext(config=config, db=db, senders=senders)
