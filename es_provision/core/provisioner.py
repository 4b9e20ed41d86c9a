"""
The main orchestrator for provisioning Elasticsearch instances: acquire the
distribution, stage it into each instance directory, merge the user config and
always clean up the staging directory afterwards.
"""

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

from es_provision.core.acquirer import ArtifactAcquirer
from es_provision.core.config_merger import merge_config
from es_provision.core.descriptor import resolve_descriptor
from es_provision.core.stager import ArchiveStager
from es_provision.exceptions import CleanupError, EsProvisionError, ProvisioningError
from es_provision.models.artifact import ArtifactDescriptor, Platform
from es_provision.models.config import InstanceConfig

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisionResult:
    """Outcome of a successful provisioning attempt."""

    instance_id: int
    base_dir: Path
    descriptor: ArtifactDescriptor
    artifact: Path
    config_dir: Path | None
    duration_s: float


def remove_staging_directory(staging_dir: Path | None) -> bool:
    """
    Best-effort removal of a staging directory.

    Failures are logged and reported through the return value, never raised.
    """
    if staging_dir is None:
        return True
    try:
        shutil.rmtree(staging_dir)
        log.debug(f"Removed staging directory {staging_dir}")
        return True
    except FileNotFoundError:
        return True
    except OSError as e:
        error = CleanupError(
            f"Could not delete Elasticsearch staging directory {staging_dir}: {e}"
        )
        log.error(str(error))
        return False


class InstanceProvisioner:
    """Runs the acquire -> stage -> merge sequence for one or more instances."""

    def __init__(
        self,
        acquirer: ArtifactAcquirer,
        stager: ArchiveStager,
        platform: Platform,
    ):
        self.acquirer = acquirer
        self.stager = stager
        self.platform = platform

    async def provision(self, instance: InstanceConfig) -> ProvisionResult:
        """
        Provisions a single instance.

        Raises:
            ProvisioningError: Wrapping whichever step failed. The staging
            directory is already gone by the time it propagates.
        """
        start_time = time.monotonic()
        cluster = instance.cluster
        staging_dir: Path | None = None
        try:
            descriptor = resolve_descriptor(
                cluster.version, cluster.flavour, self.platform
            )
            artifact = await self.acquirer.acquire(descriptor, cluster)

            staging_dir = await asyncio.to_thread(self.stager.create_staging_directory)
            await asyncio.to_thread(
                self.stager.stage, artifact, instance.base_dir, staging_dir
            )
            config_dir = await asyncio.to_thread(
                merge_config, cluster.path_conf, instance.base_dir
            )
        except (EsProvisionError, OSError) as e:
            raise ProvisioningError(
                f"Failed to provision instance {instance.instance_id} "
                f"in {instance.base_dir}: {e}",
                cause=e,
            ) from e
        finally:
            await asyncio.to_thread(remove_staging_directory, staging_dir)

        duration = time.monotonic() - start_time
        log.info(
            f"[green]✓[/green] Instance {instance.instance_id} ready in "
            f"[dim]{instance.base_dir}[/dim]"
        )
        return ProvisionResult(
            instance_id=instance.instance_id,
            base_dir=instance.base_dir,
            descriptor=descriptor,
            artifact=artifact,
            config_dir=config_dir,
            duration_s=duration,
        )

    async def provision_all(
        self, instances: list[InstanceConfig]
    ) -> list[ProvisionResult | ProvisioningError]:
        """
        Provisions several instances concurrently, one task per instance.

        Returns:
            One entry per instance, in order: its result or its failure.
        """
        outcomes = await asyncio.gather(
            *(self.provision(instance) for instance in instances),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException) and not isinstance(
                outcome, ProvisioningError
            ):
                raise outcome
        return list(outcomes)
