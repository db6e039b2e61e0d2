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

"""Builds the filtered view over the phishing-attempt collection."""

import logging

from google.api_core import exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from phishing_watch.config import DEFAULT_COLLECTION
from phishing_watch.errors import SnapshotDeliveryError

CATEGORY_FIELD = 'category'


def build_query(db, category=None, collection=DEFAULT_COLLECTION):
  """Return a query over the collection, filtered by category if one is given.

  No validation is done on the category value: an unknown category simply
  matches nothing.

  Args:
    db (google.cloud.firestore.Client): The Firestore client.
    category (str): Exact-match filter on the 'category' field, or None/''.
    collection (str): Name of the collection holding the records.
  """
  query = db.collection(collection)
  if category:
    query = query.where(filter=FieldFilter(CATEGORY_FIELD, '==', category))
  return query


def project_documents(documents):
  """Map document snapshots to plain records, keeping the store's order.

  Each record is the document's fields plus its identifier under 'id'. The
  identifier takes precedence over a stored field of the same name, and the
  remaining fields are sorted so the JSON rendering is stable across reads.
  """
  batch = []
  for doc in documents:
    fields = doc.to_dict() or {}
    record = {'id': doc.id}
    for key in sorted(fields):
      if key != 'id':
        record[key] = fields[key]
    batch.append(record)
  return batch


def read_batch(query):
  """Read the query once and return the projected records."""
  try:
    documents = query.get()
  except (exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
    raise SnapshotDeliveryError('reading phishing attempts failed: {}'.format(
        e)) from e
  batch = project_documents(documents)
  logging.info('Read %d phishing attempt(s)', len(batch))
  return batch
