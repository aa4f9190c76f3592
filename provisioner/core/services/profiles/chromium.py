"""Headless Chromium in a linuxserver.io container, managed by docker compose."""

from __future__ import annotations

import yaml

from provisioner.adapters.base import RuntimeEngine
from provisioner.adapters.containers.docker import ComposeEngine
from provisioner.core.models.capability import HostCapability
from provisioner.core.models.deployment import (
    DeploymentConfig,
    DeploymentDescriptor,
    PortPair,
    ProxySettings,
)
from provisioner.core.models.tooling import InstallStep, ToolSpec
from provisioner.core.services.collector import CollectionPlan, ResourcePrompt
from provisioner.core.services.profiles.base import ServiceProfile

IMAGE = "lscr.io/linuxserver/chromium:latest"
INTERNAL_HTTP_PORT = 3000
INTERNAL_HTTPS_PORT = 3001
DEFAULT_SHM_SIZE = "1gb"

_KEYRING = "/etc/apt/keyrings/docker.gpg"
_DISTRO = '$(. /etc/os-release && echo "$ID")'

DOCKER_REPO_COMMANDS: list[list[str]] = [
    ["install", "-m", "0755", "-d", "/etc/apt/keyrings"],
    [
        "bash", "-c",
        f"curl -fsSL https://download.docker.com/linux/{_DISTRO}/gpg"
        f" | gpg --dearmor --yes -o {_KEYRING}",
    ],
    ["chmod", "a+r", _KEYRING],
    [
        "bash", "-c",
        f'echo "deb [arch=$(dpkg --print-architecture) signed-by={_KEYRING}]'
        f' https://download.docker.com/linux/{_DISTRO} $(lsb_release -cs) stable"'
        " > /etc/apt/sources.list.d/docker.list",
    ],
]


def proxy_cli_flag(proxy: ProxySettings | None) -> str:
    """Chromium ``--proxy-server`` flag, or an empty string."""
    if proxy is None:
        return ""
    return f"--proxy-server={proxy.url()}"


def _compose_escape(value: str) -> str:
    # compose interpolates $VAR; $$ is a literal dollar
    return value.replace("$", "$$")


class ChromiumProfile(ServiceProfile):
    name = "chromium"
    title = "Chromium"
    unit = "chromium"
    descriptor_filename = "docker-compose.yaml"
    data_dir = "config"
    aux_label = "Show container status commands"

    def baseline(self) -> list[ToolSpec]:
        return [
            ToolSpec(
                name="prerequisites",
                label="base packages",
                packages=["curl", "gnupg", "lsb-release", "apt-transport-https"],
                steps=[
                    InstallStep(kind="refresh"),
                    InstallStep(
                        kind="packages",
                        packages=["curl", "gnupg", "lsb-release", "apt-transport-https"],
                    ),
                ],
            ),
            ToolSpec(
                name="docker",
                label="Docker",
                binary="docker",
                version_command=["docker", "--version"],
                steps=[
                    InstallStep(
                        kind="packages",
                        label="repository prerequisites",
                        packages=["ca-certificates", "curl", "gnupg", "lsb-release"],
                    ),
                    InstallStep(
                        kind="repo",
                        label="Docker apt repository",
                        commands=DOCKER_REPO_COMMANDS,
                        needs_sudo=True,
                        timeout=120,
                    ),
                    InstallStep(
                        kind="packages",
                        label="Docker engine",
                        packages=[
                            "docker-ce",
                            "docker-ce-cli",
                            "containerd.io",
                            "docker-buildx-plugin",
                            "docker-compose-plugin",
                        ],
                    ),
                ],
            ),
        ]

    def collection_plan(self) -> CollectionPlan:
        return CollectionPlan(
            profile=self.name,
            ask_credentials=True,
            ask_ports=True,
            ask_timezone=True,
            ask_proxy=True,
            default_ports=PortPair(
                primary=self.settings.http_port,
                secondary=self.settings.https_port,
            ),
            resources=[
                ResourcePrompt(
                    key="shm_size",
                    text="Shared memory size",
                    default=DEFAULT_SHM_SIZE,
                    kind="size",
                ),
            ],
        )

    def candidate_ports(self) -> list[int]:
        return [self.settings.http_port, self.settings.https_port]

    def render(self, cfg: DeploymentConfig) -> DeploymentDescriptor:
        if cfg.ports is None:
            raise ValueError("chromium needs a port pair")

        username = cfg.credentials.username if cfg.credentials else ""
        password = cfg.credentials.password.get_secret_value() if cfg.credentials else ""

        environment = {
            "CUSTOM_USER": username,
            "PASSWORD": password,
            "PUID": str(self.settings.puid),
            "PGID": str(self.settings.pgid),
            "TZ": cfg.timezone,
            "CHROME_CLI": proxy_cli_flag(cfg.proxy),
        }
        service = {
            "image": IMAGE,
            "container_name": self.unit,
            "security_opt": ["seccomp:unconfined"],
            "environment": {k: _compose_escape(v) for k, v in environment.items()},
            "volumes": [f"{self.workdir / self.data_dir}:/config"],
            "ports": [
                f"{cfg.ports.primary}:{INTERNAL_HTTP_PORT}",
                f"{cfg.ports.secondary}:{INTERNAL_HTTPS_PORT}",
            ],
            "shm_size": cfg.resource_hints.get("shm_size", DEFAULT_SHM_SIZE),
            "restart": "unless-stopped",
        }
        compose = {"name": self.unit, "services": {self.unit: service}}
        content = yaml.safe_dump(compose, sort_keys=False, default_flow_style=False)
        return DeploymentDescriptor(
            filename=self.descriptor_filename,
            content=content,
            sensitive=cfg.embeds_secrets,
        )

    def engine(self) -> RuntimeEngine:
        return ComposeEngine()

    def access_info(self, cfg: DeploymentConfig, caps: HostCapability) -> list[str]:
        addr = caps.display_address
        lines = ["Chromium running at:"]
        if cfg.ports is not None:
            lines.append(f"  http://{addr}:{cfg.ports.primary}/")
            lines.append(f"  https://{addr}:{cfg.ports.secondary}/")
        if cfg.credentials is not None:
            lines.append(f"Login → user: {cfg.credentials.username} | pass: ********")
        if cfg.proxy is not None:
            lines.append(f"Proxy: {cfg.proxy.url(include_secret=False)}")
        lines.append(f"Logs:  docker logs -f {self.unit}")
        lines.append(f"Stop:  docker compose -f {self.descriptor_path} down")
        return lines

    def management_commands(self) -> list[tuple[str, str]]:
        return [
            (f"docker ps --filter name={self.unit}", "container status"),
            (f"docker logs -f {self.unit}", "follow container logs"),
            (f"docker restart {self.unit}", "restart the browser"),
            (f"docker compose -f {self.descriptor_path} pull", "fetch a newer image"),
        ]

    @property
    def removal_warning(self) -> str:
        return "This will stop and remove the Chromium container and config."

    @property
    def logs_hint(self) -> str:
        return f"Check the container logs: docker logs {self.unit}"
