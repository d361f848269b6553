"""
Static file templates written into the staging tree.

Placeholders use ``str.format``: ``{name}`` is the product name,
``{role}`` is ``master`` or ``slave``. Literal shell braces are doubled.
"""

from __future__ import annotations

ROLES = ("master", "slave")

# ── /etc/default ────────────────────────────────────────────────

DEFAULT_COMMON = """\
LOGS=/var/log/{name}
ULIMIT="-n 8192"
"""

DEFAULT_MASTER = """\
PORT=5050
ZK=`cat /etc/{name}/zk`
"""

DEFAULT_SLAVE = """\
MASTER=`cat /etc/{name}/zk`
"""

ZK = "zk://localhost:2181/{name}\n"

# Version-gated master defaults.
MASTER_QUORUM = "1\n"
MASTER_WORK_DIR = "/var/lib/{name}\n"

# ── Init wrapper ────────────────────────────────────────────────

INIT_WRAPPER = """\
#!/bin/bash
# Turns /etc/default/{name}* and /etc/{name}-<role>/* into daemon flags.
set -o errexit -o nounset -o pipefail

role="${{1:?usage: $0 master|slave}}"
cmd=(/usr/sbin/{name}-"$role")

[[ -f /etc/default/{name} ]] && . /etc/default/{name}
[[ -f /etc/default/{name}-"$role" ]] && . /etc/default/{name}-"$role"

for conf in /etc/{name}/* /etc/{name}-"$role"/*; do
  [[ -f "$conf" ]] || continue
  key="$(basename "$conf")"
  cmd+=(--"$key"="$(cat "$conf")")
done

[[ -n "${{LOGS:-}}" ]] && cmd+=(--log_dir="$LOGS")
[[ -n "${{ULIMIT:-}}" ]] && ulimit $ULIMIT

exec "${{cmd[@]}}"
"""

# ── Init integration ────────────────────────────────────────────

SYSV = """\
#!/bin/sh
### BEGIN INIT INFO
# Provides:          {name}-{role}
# Required-Start:    $network $remote_fs
# Required-Stop:     $network $remote_fs
# Default-Start:     2 3 4 5
# Default-Stop:      0 1 6
# Short-Description: {name} {role}
### END INIT INFO

PIDFILE=/var/run/{name}-{role}.pid
DAEMON=/usr/bin/{name}-init-wrapper

case "$1" in
  start)
    start-stop-daemon --start --background --make-pidfile --pidfile "$PIDFILE" \\
      --exec "$DAEMON" -- {role}
    ;;
  stop)
    start-stop-daemon --stop --pidfile "$PIDFILE" --retry 10
    rm -f "$PIDFILE"
    ;;
  restart)
    "$0" stop
    "$0" start
    ;;
  status)
    start-stop-daemon --status --pidfile "$PIDFILE"
    ;;
  *)
    echo "Usage: $0 {{start|stop|restart|status}}" >&2
    exit 1
    ;;
esac
"""

UPSTART = """\
description "{name} {role}"

start on stopped rc RUNLEVEL=[2345]
respawn

exec /usr/bin/{name}-init-wrapper {role}
"""

SYSTEMD = """\
[Unit]
Description={name} {role}
After=network.target
Wants=network.target

[Service]
ExecStart=/usr/bin/{name}-init-wrapper {role}
Restart=always
RestartSec=20

[Install]
WantedBy=multi-user.target
"""
