import mseedreader

sid = mseedreader.FDSNSourceId.parse("FDSN:CO_JSC_00_H_H_Z")
print(f"{sid}  valid: {sid.validate()[0]}")
print(f"  as nslc: {sid.asNslc()}")

ident = mseedreader.parseIdentity("FDSN:XX2025_BIGGYBIG__L_RQQ_Z")
print(f"network: {ident.network} station: {ident.station} location: '{ident.location}' channel: {ident.channel}")

print(mseedreader.nslc2sid("IU", "ANMO", "00", "BHZ"))
