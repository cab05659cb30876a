"""Example running the threat-analysis workflow against the configured store.

Set THREATFLOW_MODEL (and the matching provider API key) before running:

    THREATFLOW_MODEL=openai:gpt-4o-mini python guides/threat_analysis_example.py
"""

import asyncio

from threatflow import ThreatStore, create_engine, get_store


async def main():
    store = get_store()
    threats = ThreatStore(store)
    target = await threats.store_threat(
        {"type": "malware", "ip": "203.0.113.7", "description": "Beaconing to C2"}
    )
    await threats.store_threat({"type": "malware", "ip": "203.0.113.7"})

    engine = create_engine(store=store)
    instance = await engine.trigger(
        "threat-analysis", {"threatId": target.id, "userId": "guide"}
    )
    print(f"Triggered {instance.id}")

    final = await engine.wait(instance.id)
    print(f"Status: {final.status.value}")
    for entry in final.results:
        print(f"- {entry.step_name}: {sorted(entry.result)}")


if __name__ == "__main__":
    asyncio.run(main())
