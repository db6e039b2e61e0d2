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

"""Exceptions raised while reading phishing attempts or notifying about them."""


class PhishingWatchError(Exception):
  """Base class for all errors raised by this package."""


class SubscriptionSetupError(PhishingWatchError):
  """Building the query or attaching the listener failed."""


class SnapshotDeliveryError(PhishingWatchError):
  """The store failed to deliver (or we failed to handle) a snapshot."""


class SenderDeliveryError(PhishingWatchError):
  """A notification channel failed to deliver a batch.

  Attributes:
    channel (str): Name of the failing channel, e.g. 'gmail'.
    reason (str): Provider-specific description of the failure.
  """

  def __init__(self, channel, reason):
    super().__init__('{} delivery failed: {}'.format(channel, reason))
    self.channel = channel
    self.reason = reason
