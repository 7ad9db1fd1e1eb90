"""Unit tests for kind cluster lifecycle."""

from coder_kind import cluster

from .conftest import sh_error


def test_create_cluster_deletes_then_creates(fake_sh, cluster_cfg):
    cluster.create_cluster(cluster_cfg)
    assert fake_sh.argv("kind") == [
        ("kind", "delete", "cluster", "--name", "coder-test"),
        ("kind", "create", "cluster", "--name", "coder-test"),
    ]


def test_create_cluster_tolerates_failed_delete(fake_sh, cluster_cfg):
    def _kind(*args, **kwargs):
        if args[0] == "delete":
            raise sh_error("kind delete cluster")
        return ""

    fake_sh.on("kind", _kind)
    cluster.create_cluster(cluster_cfg)
    assert fake_sh.argv("kind")[-1][:2] == ("kind", "create")


def test_create_cluster_reuses_delete_cluster(fake_sh, monkeypatch, cluster_cfg):
    deleted = []
    monkeypatch.setattr(cluster, "delete_cluster", deleted.append)
    cluster.create_cluster(cluster_cfg)
    assert deleted == [cluster_cfg]
    assert fake_sh.argv("kind") == [("kind", "create", "cluster", "--name", "coder-test")]


def test_create_cluster_is_repeatable(fake_sh, cluster_cfg):
    cluster.create_cluster(cluster_cfg)
    first = fake_sh.argv()
    fake_sh.calls.clear()
    cluster.create_cluster(cluster_cfg)
    assert fake_sh.argv() == first


def test_delete_cluster_missing_is_not_an_error(fake_sh, cluster_cfg, capsys):
    def _kind(*args, **kwargs):
        raise sh_error("kind delete cluster")

    fake_sh.on("kind", _kind)
    cluster.delete_cluster(cluster_cfg)
    assert "not found or already deleted" in capsys.readouterr().err


def test_delete_cluster_uses_configured_name(fake_sh, cluster_cfg):
    cfg = cluster_cfg.model_copy(update={"cluster_name": "other"})
    cluster.delete_cluster(cfg)
    assert fake_sh.argv("kind") == [("kind", "delete", "cluster", "--name", "other")]
