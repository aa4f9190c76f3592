"""
Tests for descriptor rendering — compose file and screen unit document.
"""

import yaml
from pydantic import SecretStr

from provisioner.core.models.deployment import (
    Credentials,
    DeploymentConfig,
    PortPair,
    ProxySettings,
)
from provisioner.core.services.profiles.bitz import BitzProfile
from provisioner.core.services.profiles.chromium import ChromiumProfile, proxy_cli_flag


def _chromium_config(**overrides) -> DeploymentConfig:
    data = {
        "profile": "chromium",
        "ports": PortPair(primary=3010, secondary=3011),
        "timezone": "Europe/Berlin",
        "resource_hints": {"shm_size": "1gb"},
    }
    data.update(overrides)
    return DeploymentConfig(**data)


class TestChromiumCompose:
    def test_structure(self, settings):
        profile = ChromiumProfile(settings)
        descriptor = profile.render(_chromium_config())
        doc = yaml.safe_load(descriptor.content)

        assert descriptor.filename == "docker-compose.yaml"
        assert "version" not in doc
        service = doc["services"]["chromium"]
        assert service["image"] == "lscr.io/linuxserver/chromium:latest"
        assert service["container_name"] == "chromium"
        assert service["security_opt"] == ["seccomp:unconfined"]
        assert service["ports"] == ["3010:3000", "3011:3001"]
        assert service["shm_size"] == "1gb"
        assert service["restart"] == "unless-stopped"
        assert service["volumes"] == [f"{settings.home / 'chromium' / 'config'}:/config"]

    def test_absent_values_render_empty(self, settings):
        descriptor = ChromiumProfile(settings).render(_chromium_config())
        env = yaml.safe_load(descriptor.content)["services"]["chromium"]["environment"]

        assert env["CUSTOM_USER"] == ""
        assert env["PASSWORD"] == ""
        assert env["CHROME_CLI"] == ""
        assert env["TZ"] == "Europe/Berlin"
        assert env["PUID"] == "1000"
        assert env["PGID"] == "1000"
        assert not descriptor.sensitive

    def test_deterministic(self, settings):
        profile = ChromiumProfile(settings)
        cfg = _chromium_config(credentials=Credentials(username="alice", password=SecretStr("pw")))
        assert profile.render(cfg).content == profile.render(cfg.model_copy(deep=True)).content

    def test_credentials_mark_sensitive(self, settings):
        cfg = _chromium_config(credentials=Credentials(username="alice", password=SecretStr("pw")))
        descriptor = ChromiumProfile(settings).render(cfg)
        env = yaml.safe_load(descriptor.content)["services"]["chromium"]["environment"]

        assert descriptor.sensitive
        assert env["CUSTOM_USER"] == "alice"
        assert env["PASSWORD"] == "pw"

    def test_dollar_is_escaped_for_compose(self, settings):
        cfg = _chromium_config(credentials=Credentials(username="alice", password=SecretStr("pa$$word$HOME")))
        descriptor = ChromiumProfile(settings).render(cfg)
        env = yaml.safe_load(descriptor.content)["services"]["chromium"]["environment"]

        assert env["PASSWORD"] == "pa$$$$word$$HOME"

    def test_quotes_survive_yaml(self, settings):
        cfg = _chromium_config(credentials=Credentials(username="alice", password=SecretStr("it's: \"odd\"")))
        descriptor = ChromiumProfile(settings).render(cfg)
        env = yaml.safe_load(descriptor.content)["services"]["chromium"]["environment"]

        assert env["PASSWORD"] == "it's: \"odd\""

    def test_proxy_flag(self, settings):
        proxy = ProxySettings(
            scheme="http", host="10.0.0.2", port=8080,
            auth_user="u", auth_pass=SecretStr("p"),
        )
        descriptor = ChromiumProfile(settings).render(_chromium_config(proxy=proxy))
        env = yaml.safe_load(descriptor.content)["services"]["chromium"]["environment"]

        assert env["CHROME_CLI"] == "--proxy-server=http://u:p@10.0.0.2:8080"
        assert descriptor.sensitive

    def test_proxy_flag_without_proxy(self):
        assert proxy_cli_flag(None) == ""


class TestBitzUnit:
    def test_structure(self, settings):
        profile = BitzProfile(settings)
        cfg = DeploymentConfig(profile="bitz", resource_hints={"cores": "3", "wallet": "Abc"})
        descriptor = profile.render(cfg)
        doc = yaml.safe_load(descriptor.content)

        assert descriptor.filename == "bitz-unit.yaml"
        assert not descriptor.sensitive
        assert doc["unit"] == "bitz"
        assert doc["command"] == ["bitz", "collect", "--cores", "3"]
        assert doc["working_dir"] == str(settings.home / "bitz")
        assert doc["restart"] == "unless-stopped"
        assert str(settings.home / ".cargo/bin") in doc["path_prepend"]

    def test_wallet_not_rendered(self, settings):
        cfg = DeploymentConfig(profile="bitz", resource_hints={"cores": "1", "wallet": "WalletAddr"})
        assert "WalletAddr" not in BitzProfile(settings).render(cfg).content

    def test_deterministic(self, settings):
        profile = BitzProfile(settings)
        cfg = DeploymentConfig(profile="bitz", resource_hints={"cores": "2"})
        assert profile.render(cfg).content == profile.render(cfg).content
