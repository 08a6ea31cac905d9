# Copyright contributors to the nop-provider project. All rights reserved.
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

from pathlib import Path
from typing import Union

import yaml
from pydantic import ValidationError

from nop_provider.models.nop_resource import KIND, NopResource


class ManifestError(Exception):

    def __init__(self, message: str, path: Union[str, Path]):
        self.message = message
        self.path = Path(path)
        super().__init__(f"Invalid manifest {self.path.as_posix()}: {message}")


def load_manifest(path: Union[str, Path]) -> NopResource:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ManifestError(str(e), path) from e
    if not isinstance(data, dict):
        raise ManifestError("expected a mapping at the top level", path)
    kind = data.get("kind", KIND)
    if kind != KIND:
        raise ManifestError(f"expected kind {KIND}, got {kind}", path)
    try:
        return NopResource.model_validate(data)
    except ValidationError as e:
        raise ManifestError(str(e), path) from e


def dump_manifest(resource: NopResource) -> str:
    data = resource.model_dump(mode="json", exclude_none=True)
    return yaml.safe_dump(data, sort_keys=False)


def write_manifest(resource: NopResource, path: Union[str, Path]):
    with open(path, "w") as f:
        f.write(dump_manifest(resource))
