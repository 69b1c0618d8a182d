"""WireFish Test Suite

Test modules:
    test_icmp     - checksum, echo request construction, reply parsing
    test_net      - resolution, timed connect, raw socket setup
    test_scanner  - port classification and scan invariants
    test_tracer   - TTL stepping against a raw socket double
    test_monitor  - /proc/net/dev parsing and rate arithmetic
    test_config   - range parsing, validators, environment config
    test_output   - table, CSV and JSON renderers
    test_logging  - logger setup
    test_cli      - click commands and exit codes

Run all tests:
    pytest tests/ -v
"""
