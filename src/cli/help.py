"""Help text for the companion and its load generator."""

from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION = "pulsar-companion"

MAIN_HELP = """
Pulsar Companion - A companion CLI tool for Apache Pulsar

Usage:
  pulsar-companion [options]

Common Options:
  --topic <name>            Specify topic name (default: pulsar_companion)
  -h, --help                Show this help message
  -v, --version             Show version

Producer Options:
  --send <message>          Send a message to the topic
  --key <key>               Set message key
  -t, --threads <n>         Number of IO threads (default: 1)
  -c, --compression <type>  Compression type (default: NONE)
                              Valid types: NONE, LZ4, ZLIB, ZSTD, SNAPPY

Consumer Options:
  --type <type>             Set subscription type (default: Exclusive)
                              Valid types: Exclusive, Failover, Shared, KeyShared
  -s, --sub <name>          Set subscription name (default: pulsar_companion_sub)
  --since <value>           Read messages without subscription from a position
                              Values: earliest, latest
                              Or ISO 8601 timestamp (e.g., "2024-01-20T10:00:00Z")

Examples:
  # Producer examples
  pulsar-companion --send "Hello" --topic "myTopic"
  pulsar-companion --send "Hello" --key "key1" --topic "myTopic"

  # Consumer examples
  pulsar-companion --topic "myTopic" --type "Failover" -s "my_sub"
  pulsar-companion --topic "myTopic" --since earliest
  pulsar-companion --topic "myTopic" --since "2024-01-20T10:00:00Z"
"""

STRESS_HELP = """
Pulsar Companion Stress Test Tool

Usage:
  pulsar-companion-stress [options]

Options:
  --topic <name>      Specify topic name (default: pulsar_companion)
  --count <number>    Number of messages to send (default: 100)
  --delay <ms>        Delay between messages in ms (default: 10)
  -h, --help          Show this help message
  -v, --version       Show version

Examples:
  pulsar-companion-stress --count 1000 --delay 50 --topic "myTopic"
  pulsar-companion-stress --topic "testTopic" --count 500
"""


def version_string() -> str:
    try:
        return f"{DISTRIBUTION} v{version(DISTRIBUTION)}"
    except PackageNotFoundError:
        return f"{DISTRIBUTION} vunknown"
