import json
import os
import pytest

from collectors.softnet_stat import SoftnetStat, parse
from core.util import read_source
from output.json_sink import JsonRenderer
from output.prometheus import METRICS, PrometheusRenderer
from output.table import HEADERS, TableRenderer

DATA_DIR = os.path.join(os.path.dirname(__file__), 'data')

OLD = SoftnetStat(processed=1842008611, dropped=0, time_squeeze=1, cpu_collision=0)
NEW = SoftnetStat(processed=10, dropped=1, time_squeeze=2, cpu_collision=0,
                  received_rps=3, flow_limit_count=4, backlog_len=5, cpu_id=7)


def load(name):
    return parse(read_source(os.path.join(DATA_DIR, name)))


# ---------------------- table ----------------------

def test_table_layout_and_zero_defaults():
    out = TableRenderer(width=4).render([SoftnetStat(1, 2, 3, 4)])
    header, row = out.splitlines()
    assert header.startswith("Cpu Processed")
    assert row == "0   1   2   3   4   0   0   0   0   "
    assert out.endswith("\n")


def test_table_default_width_columns():
    out = TableRenderer().render([OLD, NEW])
    lines = out.splitlines()
    assert len(lines) == 3
    assert lines[0] == "".join(h.ljust(15) for h in HEADERS)
    assert lines[1].split() == ["0", "1842008611", "0", "1", "0", "0", "0", "0", "0"]
    # Cpu column is the position even when cpu_id is present
    assert lines[2].split() == ["1", "10", "1", "2", "0", "3", "4", "5", "7"]
    assert all(len(line) == 15 * len(HEADERS) for line in lines)


def test_table_rejects_bad_width():
    with pytest.raises(ValueError):
        TableRenderer(width=0)


# ---------------------- prometheus ----------------------

def test_prometheus_labels_by_position():
    out = PrometheusRenderer().render([OLD, OLD, OLD])
    lines = out.splitlines()
    assert len(lines) == 3 * len(METRICS)
    third = lines[2 * len(METRICS):]
    assert all('{cpu="cpu2"}' in line for line in third)
    assert third[0] == 'softnet_frames_processed{cpu="cpu2"} 1842008611'
    assert third[-1] == 'softnet_backlog_len{cpu="cpu2"} 0'


def test_prometheus_prefers_cpu_id():
    out = PrometheusRenderer().render([OLD, OLD, NEW])
    lines = out.splitlines()[2 * len(METRICS):]
    assert all('{cpu="cpu7"}' in line for line in lines)
    assert lines == [
        'softnet_frames_processed{cpu="cpu7"} 10',
        'softnet_frames_dropped{cpu="cpu7"} 1',
        'softnet_time_squeeze{cpu="cpu7"} 2',
        'softnet_cpu_collisions{cpu="cpu7"} 0',
        'softnet_received_rps{cpu="cpu7"} 3',
        'softnet_flow_limit_count{cpu="cpu7"} 4',
        'softnet_backlog_len{cpu="cpu7"} 5',
    ]


def test_prometheus_has_no_cpu_id_metric():
    out = PrometheusRenderer().render(load("proc-net-softnet_stat-5_10_47"))
    assert "cpu_id" not in out
    assert 'softnet_frames_processed{cpu="cpu3"} 123557' in out


# ---------------------- json ----------------------

def test_json_shape():
    out = JsonRenderer().render([OLD])
    assert out.endswith("\n") and out.count("\n") == 1
    assert json.loads(out) == [{
        "processed": 1842008611,
        "dropped": 0,
        "time_squeeze": 1,
        "cpu_collision": 0,
        "received_rps": None,
        "flow_limit_count": None,
        "backlog_len": None,
        "cpu_id": None,
    }]


@pytest.mark.parametrize("name", [
    "proc-net-softnet_stat-2_6_32",
    "proc-net-softnet_stat-3_11",
    "proc-net-softnet_stat-5_10_47",
])
def test_json_round_trip(name):
    r = JsonRenderer()
    stats = load(name)
    assert r.decode(r.render(stats)) == stats


def test_json_decode_missing_optional_keys():
    stats = JsonRenderer().decode('[{"processed":1,"dropped":2,"time_squeeze":3,"cpu_collision":4,"received_rps":5}]')
    assert stats == [SoftnetStat(1, 2, 3, 4, received_rps=5)]


def test_json_decode_rejects_non_array():
    with pytest.raises(ValueError):
        JsonRenderer().decode('{"processed": 1}')


@pytest.mark.parametrize("value", ["-1", "4294967296", "true", "1.5", '"7"'])
def test_json_decode_rejects_non_u32(value):
    text = '[{"processed":%s,"dropped":0,"time_squeeze":0,"cpu_collision":0}]' % value
    with pytest.raises(ValueError):
        JsonRenderer().decode(text)


def test_json_decode_rejects_non_u32_optional():
    with pytest.raises(ValueError):
        JsonRenderer().decode('[{"processed":0,"dropped":0,"time_squeeze":0,"cpu_collision":0,"cpu_id":-2}]')


def test_json_decode_accepts_u32_max():
    stats = JsonRenderer().decode('[{"processed":4294967295,"dropped":0,"time_squeeze":0,"cpu_collision":0}]')
    assert stats[0].processed == 4294967295
