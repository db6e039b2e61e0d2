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
import json

import pytest


def pytest_addoption(parser):
  # if Terraform was used to deploy resources, pass the state details
  parser.addoption("--tfstate", action="store", default=None)

  # otherwise pass values explicitly
  parser.addoption("--project", action="store", default=None)
  parser.addoption("--region", action="store", default=None)
  parser.addoption("--function_http", action="store", default=None)
  parser.addoption("--collection", action="store",
                   default="phishing_attempts")


@pytest.fixture(scope='module')
def deployment(pytestconfig):
  """Names of the deployed resources under test."""
  tf_state_file = pytestconfig.getoption('tfstate')
  if tf_state_file is not None:
    with open(tf_state_file, 'r', encoding='utf-8') as fp:
      tf_output_vars = json.load(fp)['outputs']
    values = {
        'project': tf_output_vars['project']['value'],
        'region': tf_output_vars['region']['value'],
        'function_http': tf_output_vars['function_http']['value'],
        'collection': tf_output_vars['collection']['value'],
    }
  else:
    values = {
        'project': pytestconfig.getoption('project'),
        'region': pytestconfig.getoption('region'),
        'function_http': pytestconfig.getoption('function_http'),
        'collection': pytestconfig.getoption('collection'),
    }

  for name, value in values.items():
    assert value is not None, '--{} is required'.format(name)
  return values
