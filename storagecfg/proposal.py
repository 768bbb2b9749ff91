# Copyright 2024 Canonical, Ltd.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

"""Calculation of storage proposals.

A Proposal turns proposal settings, or a storage Config, into the settings of
the planning engine, runs the engine and keeps its result.  The planning
algorithm itself lives behind the PlanningEngine interface."""

import abc
import logging
from typing import Any, Dict, List, Optional

import attr

from storagecfg.checkers import check_config
from storagecfg.common.search import ConfigSearchSolver
from storagecfg.errors import PlanningError
from storagecfg.legacy.from_config import settings_from_config
from storagecfg.legacy.generator import (
    VolumesGenerator,
    merge_volumes,
    planned_devices_from_engine,
)
from storagecfg.legacy.settings import (
    EngineSettings,
    ProposalSettings,
    engine_settings,
)
from storagecfg.legacy.volume import PlannedDevice, Volume, VolumeInfo, VolumeSpec
from storagecfg.models.config import Config
from storagecfg.models.devices import Device, DeviceInventory
from storagecfg.product import ProductConfig
from storagecfg.types import Issue, IssueKind, has_errors

log = logging.getLogger("storagecfg.proposal")


@attr.s(auto_attribs=True)
class Action:
    text: str
    subvol: bool = False
    delete: bool = False


@attr.s(auto_attribs=True)
class PlanningResult:
    success: bool
    # planned devices as reported by the engine, see
    # storagecfg.legacy.generator.planned_device_from_engine
    planned_devices: List[Dict[str, Any]] = attr.Factory(list)
    actions: List[Action] = attr.Factory(list)


class PlanningEngine(abc.ABC):
    @abc.abstractmethod
    def propose(
        self, settings: EngineSettings, inventory: DeviceInventory
    ) -> PlanningResult:
        """Compute a storage layout.

        May raise PlanningError when no layout can be computed at all."""


class Proposal:
    def __init__(
        self,
        engine: PlanningEngine,
        product: ProductConfig,
        inventory: DeviceInventory,
    ):
        self.engine = engine
        self.product = product
        self.inventory = inventory
        self.settings: Optional[ProposalSettings] = None
        self.issues: List[Issue] = []
        self.actions: List[Action] = []
        self._specs: List[VolumeSpec] = []
        self._planned_devices: List[PlannedDevice] = []
        self._success = False

    @property
    def available_devices(self) -> List[Device]:
        return self.inventory.disks()

    def volume_templates(self) -> List[VolumeInfo]:
        generator = VolumesGenerator(
            self.product.volume_templates, lvm=self.product.lvm
        )
        return generator.volumes()

    def default_settings(self) -> ProposalSettings:
        return ProposalSettings(
            use_lvm=self.product.lvm,
            encryption_method=self.product.encryption_method,
            pbkd_function=self.product.pbkd_function,
            volumes=[
                Volume(mount_path=spec.mount_path)
                for spec in self.product.volume_templates
                if spec.proposed
            ],
        )

    def calculate(self, settings: Optional[ProposalSettings] = None) -> bool:
        """Calculate a proposal, returning whether it succeeded."""
        if settings is None:
            settings = self.default_settings()
        self.settings = settings
        self.issues = []
        self.actions = []
        self._planned_devices = []
        self._specs = merge_volumes(
            settings.volumes, self.product.volume_templates, lvm=settings.use_lvm
        )
        log.info("calculating proposal with %s", settings)
        handoff = engine_settings(settings, self._specs, self.inventory)
        try:
            result = self.engine.propose(handoff, self.inventory)
        except PlanningError as e:
            log.exception("planning engine failed")
            self._fail(str(e))
            return False
        if not result.success:
            log.warning("planning engine found no valid layout")
            self._fail("Cannot calculate a valid storage setup")
            return False
        self._planned_devices = planned_devices_from_engine(result.planned_devices)
        self.actions = list(result.actions)
        self._success = True
        log.debug(
            "proposal planned %d device(s) with %d action(s)",
            len(self._planned_devices),
            len(self.actions),
        )
        return True

    def _fail(self, message: str) -> None:
        self._success = False
        self.issues.append(
            Issue.error(IssueKind.INCONSISTENT_CONFIG, "proposal", message)
        )

    def calculate_from_config(self, config: Config) -> bool:
        """Check and solve `config`, then calculate a proposal from it.

        The engine is not run when the config has errors; they are left in
        `issues` instead."""
        issues = check_config(config)
        resolved = ConfigSearchSolver(self.inventory).solve(config)
        issues.extend(resolved.issues)
        if has_errors(issues):
            log.warning("not calculating proposal: the storage config has errors")
            self.settings = None
            self.actions = []
            self._specs = []
            self._planned_devices = []
            self._success = False
            self.issues = issues
            return False
        settings = settings_from_config(config, self.inventory, resolved)
        success = self.calculate(settings)
        self.issues = issues + self.issues
        return success

    def calculated_volumes(self) -> List[VolumeInfo]:
        if not self._success:
            return []
        generator = VolumesGenerator(
            self._specs,
            self._planned_devices,
            lvm=self.settings.use_lvm,
            encrypted=self.settings.use_encryption,
        )
        return generator.volumes(only_proposed=True)
