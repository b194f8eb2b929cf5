"""Jinja2 templates for the files rendered at container creation.

Each template is rendered with `c` (the Container), `settings`
(ThinLxcSettings) and `bind_mounts` (host path -> resolved destination).
"""

# On host: {ro_layer}/config, handed to lxc-start -f
LXC_CONFIG = """\
lxc.network.type = veth
lxc.network.link = {{ settings.bridge }}
lxc.network.flags = up
lxc.network.hwaddr = {{ c.hwaddr }}
lxc.utsname = {{ c.hostname }}
{% if c.has_static_ip %}
lxc.network.ipv4 = {{ c.ip_config }}
{% endif %}

lxc.devttydir = lxc
lxc.tty = 4
lxc.pts = 1024
lxc.rootfs = {{ c.rootfs }}
lxc.mount = {{ c.fstab_path }}
lxc.arch = amd64
lxc.cap.drop = sys_module mac_admin
lxc.pivotdir = lxc_putold

# uncomment the next line to run the container unconfined:
#lxc.aa_profile = unconfined

lxc.cgroup.devices.deny = a
# Allow any mknod (but not using the node)
lxc.cgroup.devices.allow = c *:* m
lxc.cgroup.devices.allow = b *:* m
# /dev/null and zero
lxc.cgroup.devices.allow = c 1:3 rwm
lxc.cgroup.devices.allow = c 1:5 rwm
# consoles
lxc.cgroup.devices.allow = c 5:1 rwm
lxc.cgroup.devices.allow = c 5:0 rwm
# /dev/{,u}random
lxc.cgroup.devices.allow = c 1:9 rwm
lxc.cgroup.devices.allow = c 1:8 rwm
lxc.cgroup.devices.allow = c 136:* rwm
lxc.cgroup.devices.allow = c 5:2 rwm
# rtc
lxc.cgroup.devices.allow = c 254:0 rwm
# fuse
lxc.cgroup.devices.allow = c 10:229 rwm
# tun
lxc.cgroup.devices.allow = c 10:200 rwm
# full
lxc.cgroup.devices.allow = c 1:7 rwm
# hpet
lxc.cgroup.devices.allow = c 10:228 rwm
# kvm
lxc.cgroup.devices.allow = c 10:232 rwm
{% for host_path, cont_path in bind_mounts.items() %}
lxc.mount.entry = {{ host_path }} {{ cont_path }} none bind,rw 0 0
{% endfor %}
"""

# In container: /etc/network/interfaces
INTERFACES = """\
auto lo
iface lo inet loopback
auto eth0
iface eth0 inet {{ c.inet }}
"""

# In container: /etc/hosts
HOSTS = """\
127.0.0.1 localhost {{ c.hostname }}
"""

# In container: /etc/hostname
HOSTNAME = """\
{{ c.hostname }}
"""

# In container: /etc/init/setup-gateway.conf
SETUP_GATEWAY = """\
description "setup gateway"
start on startup
script
route add -net default gw {{ settings.gateway }}
end script
"""
