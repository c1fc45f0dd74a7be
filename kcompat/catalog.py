# Copyright (C) 2024 The Android Open Source Project
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""The HAVE_/NEED_ defines generated for a kernel, as "gen" queries.

Keep entries grouped by feature, then by header, and sorted by define name
within a group, so the compat code stays grep-able. See query.py for the
syntax of an entry.
"""

import dataclasses

_DEVLINK_H = "include/net/devlink.h"
_UAPI_DEVLINK_H = "include/uapi/linux/devlink.h"
_ETHERDEVICE_H = "include/linux/etherdevice.h"
_FLOW_DISSECTOR_H = "include/net/flow_dissector.h"
_FLOW_KEYS_H = "include/net/flow_keys.h"
_FLOW_OFFLOAD_H = "include/net/flow_offload.h"
_NETDEVICE_H = "include/linux/netdevice.h"


@dataclasses.dataclass(frozen=True)
class Fragment:
    """A declaration extracted once, then queried by entries as "-"."""
    name: str
    kind: str
    decl: str
    files: tuple[str, ...]


@dataclasses.dataclass(frozen=True)
class Entry:
    query: str
    # Name of the Fragment that "-" stands for.
    literal: str | None = None


@dataclasses.dataclass(frozen=True)
class CatalogGroup:
    """Queries that run together.

    config_flag: run only if the kernel config has this option enabled.
    required_file: run only if this header exists in the source tree.
    gold_tested: covered by the gold test; the only groups run when unit
        testing.
    """
    name: str
    entries: tuple[Entry, ...]
    fragments: tuple[Fragment, ...] = ()
    config_flag: str | None = None
    required_file: str | None = None
    gold_tested: bool = False


DEVLINK = CatalogGroup(
    name="devlink",
    config_flag="CONFIG_NET_DEVLINK",
    gold_tested=True,
    # devlink_region_ops is queried 3 times, look it up in the big header once
    fragments=(
        Fragment("REGION_OPS", "struct", "devlink_region_ops", (_DEVLINK_H,)),
    ),
    entries=(
        Entry(f"HAVE_DEVLINK_FLASH_UPDATE_BEGIN_END_NOTIFY if fun devlink_flash_update_begin_notify in {_DEVLINK_H}"),
        Entry(f"HAVE_DEVLINK_FLASH_UPDATE_PARAMS_FW if struct devlink_flash_update_params matches 'struct firmware \\*fw' in {_DEVLINK_H}"),
        Entry(f"HAVE_DEVLINK_FLASH_UPDATE_PARAMS if struct devlink_flash_update_params in {_DEVLINK_H}"),
        Entry(f"HAVE_DEVLINK_HEALTH_DEFAULT_AUTO_RECOVER if fun devlink_health_reporter_create lacks auto_recover in {_DEVLINK_H}"),
        Entry(f"HAVE_DEVLINK_HEALTH if enum devlink_health_reporter_state in {_DEVLINK_H}"),
        Entry(f"HAVE_DEVLINK_HEALTH_OPS_EXTACK if method dump of devlink_health_reporter_ops matches ext_ack in {_DEVLINK_H}"),
        Entry(f"HAVE_DEVLINK_INFO_DRIVER_NAME_PUT if fun devlink_info_driver_name_put in {_DEVLINK_H}"),
        Entry(f"HAVE_DEVLINK_PARAMS if method validate of devlink_param matches ext_ack in {_DEVLINK_H}"),
        Entry(f"HAVE_DEVLINK_PARAMS_PUBLISH if fun devlink_params_publish in {_DEVLINK_H}"),
        Entry("HAVE_DEVLINK_REGION_OPS_SNAPSHOT if fun snapshot in -", literal="REGION_OPS"),
        Entry("HAVE_DEVLINK_REGION_OPS_SNAPSHOT_OPS if fun snapshot matches devlink_region_ops in -", literal="REGION_OPS"),
        Entry("HAVE_DEVLINK_REGIONS if struct devlink_region_ops in -", literal="REGION_OPS"),
        Entry(f"HAVE_DEVLINK_REGISTER_SETS_DEV if fun devlink_register matches 'struct device' in {_DEVLINK_H}"),
        Entry(f"HAVE_DEVLINK_RELOAD_ENABLE_DISABLE if fun devlink_reload_enable in {_DEVLINK_H}"),
        Entry(f"HAVE_DEVLINK_SET_FEATURES if fun devlink_set_features in {_DEVLINK_H}"),
        Entry(f"HAVE_DEVLINK_RELOAD_ACTION_AND_LIMIT if enum devlink_reload_action matches DEVLINK_RELOAD_ACTION_FW_ACTIVATE in {_UAPI_DEVLINK_H}"),
    ),
)

NETDEVICE = CatalogGroup(
    name="netdevice",
    gold_tested=True,
    entries=(
        Entry(f"HAVE_NDO_FDB_ADD_VID if method ndo_fdb_del of net_device_ops matches 'u16 vid' in {_NETDEVICE_H}"),
        Entry(f"HAVE_NDO_FDB_DEL_EXTACK if method ndo_fdb_del of net_device_ops matches ext_ack in {_NETDEVICE_H}"),
        Entry(f"HAVE_NDO_GET_DEVLINK_PORT if method ndo_get_devlink_port of net_device_ops in {_NETDEVICE_H}"),
        Entry(f"HAVE_SET_NETDEV_DEVLINK_PORT if macro SET_NETDEV_DEVLINK_PORT in {_NETDEVICE_H}"),
        Entry(f"NEED_NETIF_NAPI_ADD_NO_WEIGHT if fun netif_napi_add matches weight in {_NETDEVICE_H}"),
    ),
)

# The header is missing on old kernels. HAVE_FLOW_DISSECTOR_KEY_CVLAN is
# named after an enum key but guards a call to a function that came later.
FLOW_OFFLOAD = CatalogGroup(
    name="flow_offload",
    required_file=_FLOW_OFFLOAD_H,
    entries=(
        Entry(f"HAVE_FLOW_DISSECTOR_KEY_CVLAN if fun flow_rule_match_cvlan in {_FLOW_OFFLOAD_H}"),
    ),
)

FLOW_DISSECTOR = CatalogGroup(
    name="flow_dissector",
    entries=(
        Entry(f"HAVE_FLOW_DISSECTOR_KEY_PPPOE if enum flow_dissector_key_id matches FLOW_DISSECTOR_KEY_PPPOE in {_FLOW_DISSECTOR_H} {_FLOW_KEYS_H}"),
    ),
)

OTHER = CatalogGroup(
    name="other",
    entries=(
        Entry(f"NEED_ETH_HW_ADDR_SET if fun eth_hw_addr_set absent in {_ETHERDEVICE_H}"),
    ),
)

CATALOG = (DEVLINK, NETDEVICE, FLOW_OFFLOAD, FLOW_DISSECTOR, OTHER)
