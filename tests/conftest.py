"""Shared pytest configuration and fixtures."""

import io
from unittest.mock import AsyncMock, Mock, patch

import pytest

from newrelic_plugins.utils.logger import setup_logger


NGINX_STATUS = (
    "Active connections: 2 \n"
    "server accepts handled requests\n"
    " 29 29 31 \n"
    "Reading: 0 Writing: 1 Waiting: 1 "
)

HAPROXY_CSV = (
    "# pxname,svname,qcur,qmax,scur,smax,slim,stot,bin,bout,dreq,dresp,ereq,econ,eresp,"
    "wretr,wredis,status,weight,act,bck,chkfail,chkdown,lastchg,downtime,qlimit,pid,iid,"
    "sid,throttle,lbtot,tracked,type,rate,rate_lim,rate_max,check_status,check_code,"
    "check_duration,hrsp_1xx,hrsp_2xx,hrsp_3xx,hrsp_4xx,hrsp_5xx,hrsp_other,hanafail,"
    "req_rate,req_rate_max,req_tot,cli_abrt,srv_abrt,comp_in,comp_out,comp_byp,comp_rsp,"
    "lastsess,last_chk,last_agt,qtime,ctime,rtime,ttime,\n"
    "http-in,FRONTEND,,,3,10,2000,120,4096,8192,1,2,5,,,,,OPEN,,,,,,,,,1,2,0,,,,0,4,0,9,"
    ",,,0,100,7,3,1,0,,6,12,130,,,0,0,0,0,,,,,,,,\n"
    "app,web1,0,0,1,4,,60,2048,4096,,0,,0,0,0,0,UP,1,1,0,0,0,100,0,,1,3,1,,60,,2,2,,5,L7OK,"
    "200,1,0,50,5,2,0,0,0,,,,3,0,,,,,5,OK,,0,1,2,20,\n"
    "app,BACKEND,1,2,1,4,200,60,2048,4096,0,0,,3,4,5,6,UP,1,1,0,,0,100,0,,1,3,0,,60,,1,2,,5,"
    ",,,0,50,5,2,0,0,,,,,3,0,0,0,0,0,5,,,0,1,2,20,\n"
    "stats,BACKEND,0,0,0,0,200,0,0,0,0,0,,0,0,0,0,UP,0,0,0,,0,100,0,,1,4,0,,0,,1,0,,0,"
    ",,,0,0,0,0,0,0,,,,,0,0,0,0,0,0,0,,,0,0,0,0,\n"
)

ZK_CONF = (
    "clientPort=2181\n"
    "dataDir=/var/lib/zookeeper/version-2\n"
    "dataLogDir=/var/lib/zookeeper/version-2\n"
    "tickTime=2000\n"
    "maxClientCnxns=60\n"
    "minSessionTimeout=4000\n"
    "maxSessionTimeout=40000\n"
    "serverId=1\n"
)

ZK_MNTR = (
    "zk_version\t3.4.10-39d3a4f269333c922ed3db283be479f9deacaa0f, built on 03/23/2017 10:13 GMT\n"
    "zk_avg_latency\t0\n"
    "zk_max_latency\t12\n"
    "zk_min_latency\t0\n"
    "zk_packets_received\t70\n"
    "zk_packets_sent\t69\n"
    "zk_num_alive_connections\t1\n"
    "zk_outstanding_requests\t0\n"
    "zk_server_state\tleader\n"
    "zk_znode_count\t4\n"
    "zk_watch_count\t0\n"
    "zk_ephemerals_count\t0\n"
    "zk_approximate_data_size\t27\n"
    "zk_open_file_descriptor_count\t28\n"
    "zk_max_file_descriptor_count\t4096\n"
    "zk_followers\t2\n"
    "zk_synced_followers\t2\n"
    "zk_pending_syncs\t0\n"
)

KRAKEN_STATUS = (
    "Version: 2.2.0\n"
    "Customer: None\n"
    "Project: None\n"
    "State: Running\n"
    "Test duration: 0:00:25\n"
    "Samples count: 178, 100.00% failures\n"
    "Average times: total 0.106, latency 0.106, connect 0.000\n"
    "Percentile 50.0%: 0.120\n"
    "Percentile 90.0%: 0.125\n"
    "Percentile 95.0%: 0.126\n"
    "Percentile 99.0%: 0.167\n"
    "Percentile 100.0%: 0.281\n"
)


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test", "DEBUG", stream=io.StringIO())


@pytest.fixture
def http_client():
    """
    Patch httpx.AsyncClient and yield the client used inside "async with".

    Tests set mock_client.get.return_value or side_effect.
    """
    with patch('httpx.AsyncClient') as mock_client_class:
        mock_client = AsyncMock()
        mock_client_class.return_value.__aenter__.return_value = mock_client
        yield mock_client


def http_response(status_code=200, text="", json_data=None):
    """Build a Mock httpx.Response."""
    response = Mock()
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    return response


def routed_get(routes):
    """
    Async side_effect for mock_client.get that answers by URL.

    Values may be a response or an exception to raise. Unknown URLs answer 404.
    """
    async def get(url, **kwargs):
        result = routes.get(url)
        if result is None:
            return http_response(status_code=404)
        if isinstance(result, Exception):
            raise result
        return result
    return get
