"""satinv -- Ansible dynamic inventory for Red Hat Satellite.

satinv queries the Satellite REST API for hosts and host collections and
assembles them into the JSON document Ansible expects from a dynamic
inventory script. API documents and the finished inventory are kept in a
disk-backed expiry cache so that repeated Ansible runs do not hammer the
API.

Typical use::

    ansible-playbook -i /usr/local/bin/satinv site.yml
    satinv --list --refresh --debug

Modules:
    app: Typer application and CLI entry point.
    cache: Disk-backed expiry cache.
    client: Satellite HTTP client.
    inventory: Inventory assembly.
    models: Pydantic models shared across the package.
    config: YAML configuration loading.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr discipline and diagnostics.
"""

__version__ = "0.3.0"
